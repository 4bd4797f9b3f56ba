"""
ECR terminal HTTP client implementing the TerminalGateway port.

Replies are returned with their HTTP status and decoded body; the terminal
reports declines and errors in the body, so non-2xx is not raised. A request
timeout becomes a synthetic 504 TIMEOUT reply. Only the status check is
retried on transport errors; starting a sale is sent exactly once.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from application.dtos.split_payments import StartSaleRequest, TransactionStatusRequest
from application.ports.terminal_gateway import TerminalGateway, TerminalReply
from core.logging_config import get_logger
from core.settings import TerminalSettings, integration_settings
from shared.codes.terminal_codes import TERMINAL_TIMEOUT
from . import endpoints
from .exceptions import TerminalTransportError


logger = get_logger(__name__)

TIMEOUT_REPLY_STATUS = 504
TIMEOUT_MESSAGE = "Terminal request timeout"


class EcrTerminalClient(TerminalGateway):
    def __init__(
        self,
        config: Optional[TerminalSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or integration_settings.ecr
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        t = self.config.timeouts
        return httpx.Timeout(t.total, connect=t.connect, read=t.read, write=t.write)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["api_key"] = self.config.api_key
        return headers

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.terminal_url.rstrip("/"),
                timeout=self.timeouts,
                headers=self._headers(),
                transport=self._transport,
            )
        # Kept open for reuse; aclose() releases it
        yield self._client

    async def aclose(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _retry(self, fn: Callable[[], Awaitable[Any]]):
        retry_cfg = self.config.retry
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(int(retry_cfg.max) + 1),
            wait=wait_exponential(multiplier=retry_cfg.base_backoff, min=0.1, max=2.0),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                return await fn()

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    async def _post(self, endpoint: str, payload: dict[str, Any], *, retry: bool = False) -> TerminalReply:
        async def send() -> httpx.Response:
            async with self.client() as c:
                return await c.post(endpoint, json=payload)

        try:
            response = await (self._retry(send) if retry else send())
        except httpx.TimeoutException:
            logger.warning("terminal_request_timeout", endpoint=endpoint)
            return TerminalReply(
                status_code=TIMEOUT_REPLY_STATUS,
                data={"error_code": TERMINAL_TIMEOUT, "error_message": TIMEOUT_MESSAGE},
            )
        except httpx.TransportError as exc:
            logger.error("terminal_unreachable", endpoint=endpoint, error=str(exc))
            raise TerminalTransportError(
                f"Terminal unreachable: {exc}", endpoint=endpoint
            ) from exc

        reply = TerminalReply(status_code=response.status_code, data=self._decode(response))
        logger.debug("terminal_reply", endpoint=endpoint, http_status=reply.status_code)
        return reply

    async def start_sale(self, req: StartSaleRequest) -> TerminalReply:
        return await self._post(endpoints.START_SALE, req.model_dump(exclude_none=True))

    async def start_ath_movil_sale(self, req: StartSaleRequest) -> TerminalReply:
        return await self._post(endpoints.START_ATH_MOVIL_SALE, req.model_dump(exclude_none=True))

    async def get_transaction_status(self, req: TransactionStatusRequest) -> TerminalReply:
        return await self._post(
            endpoints.GET_TRANSACTION_STATUS, req.model_dump(exclude_none=True), retry=True
        )
