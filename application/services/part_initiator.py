"""
Starts the terminal transaction for one split part.

The terminal answers a failed start in several shapes (an error-code body,
a declined transaction with a response message, or something unexpected).
All of them collapse into InitiationFailed with a readable error. Starting a
sale is never retried here: a duplicate start would charge twice.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from application.dtos.split_payments import StartSaleRequest, TerminalSession
from application.ports.terminal_gateway import TerminalGateway, TerminalReply
from core.logging_config import get_logger
from domain.split_payment import PaymentMethod, ReferenceChain, TaxAmounts


logger = get_logger(__name__)


@dataclass(frozen=True)
class InitiationStarted:
    trx_id: str
    payload: dict[str, Any]

    success = True


@dataclass(frozen=True)
class InitiationFailed:
    error: str
    payload: Optional[Any] = None

    success = False


InitiationOutcome = Union[InitiationStarted, InitiationFailed]


def _describe_failure(reply: TerminalReply) -> str:
    data = reply.data
    if isinstance(data, dict):
        if data.get("error_message") is not None and "error_code" not in data:
            return str(data["error_message"])
        if "error_code" in data:
            return f"Error {data['error_code']}: {data.get('error_message') or 'Unknown error'}"
        if "response_message" in data:
            return f"{data['response_message']} (Status: {reply.status_code})"
    try:
        body = data if isinstance(data, str) else json.dumps(data, default=str)
    except (TypeError, ValueError):
        body = str(data)
    return f"Transaction failed (HTTP {reply.status_code}): {body[:200]}"


def normalize_start_reply(reply: TerminalReply) -> InitiationOutcome:
    """Collapse a start-sale reply into a single outcome."""
    data = reply.data
    if reply.status_code == 200 and isinstance(data, dict) and data.get("trx_id"):
        return InitiationStarted(trx_id=str(data["trx_id"]), payload=data)
    return InitiationFailed(error=_describe_failure(reply), payload=data)


class PartTransactionInitiator:
    def __init__(self, gateway: TerminalGateway) -> None:
        self.gateway = gateway

    def build_request(
        self,
        amounts: TaxAmounts,
        session: TerminalSession,
        chain: ReferenceChain,
    ) -> StartSaleRequest:
        return StartSaleRequest(
            terminal_id=session.terminal_id,
            station_number=session.station_number,
            cashier_id=session.cashier_id,
            reference=chain.current,
            last_reference=chain.last_reference,
            session_id=session.session_id,
            receipt_email=session.receipt_email,
            amounts=amounts.to_dict(),
            receipt_output=session.receipt_output,
            manual_entry_indicator=session.manual_entry_indicator,
            force_duplicate=session.force_duplicate,
        )

    async def initiate(
        self,
        payment_method: str,
        amounts: TaxAmounts,
        session: TerminalSession,
        chain: ReferenceChain,
    ) -> InitiationOutcome:
        req = self.build_request(amounts, session, chain)
        try:
            if payment_method == PaymentMethod.ATH_MOVIL.value:
                reply = await self.gateway.start_ath_movil_sale(req)
            else:
                reply = await self.gateway.start_sale(req)
        except Exception as exc:
            logger.warning(
                "terminal_start_failed",
                payment_method=payment_method,
                reference=chain.current,
                error=str(exc),
            )
            return InitiationFailed(error=str(exc) or type(exc).__name__)

        outcome = normalize_start_reply(reply)
        logger.info(
            "terminal_start_response",
            payment_method=payment_method,
            reference=chain.current,
            http_status=reply.status_code,
            success=outcome.success,
        )
        return outcome
