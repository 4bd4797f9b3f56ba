"""
Status poller for one in-flight terminal transaction.

The terminal reports status in several shapes. Each reply is classified
into exactly one signal:

- Approved: explicit APPROVED status or approval code 00/85
- Rejected: explicit REJECTED/ERROR status, any other approval code,
  or a bare error_code/error_message body
- StillPending: explicit PENDING, approval code ST, or an unrecognized body
- TransportFault: exception or non-2xx reply from the status call

Pending and transport faults consume an attempt; the pacing and the bound
live in PollingPolicy (a tenacity AsyncRetrying with an injectable sleep).
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from application.dtos.split_payments import TerminalSession, TransactionStatusRequest
from application.ports.terminal_gateway import TerminalGateway, TerminalReply
from core.logging_config import get_logger
from shared.codes.terminal_codes import (
    APPROVED_CODES,
    SENDING_TRANSACTION_ID,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
)


logger = get_logger(__name__)


# ---- Status signals ----

@dataclass(frozen=True)
class Approved:
    detail: dict[str, Any]


@dataclass(frozen=True)
class Rejected:
    reason: str
    detail: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class StillPending:
    note: str = "pending"


@dataclass(frozen=True)
class TransportFault:
    reason: str


StatusSignal = Union[Approved, Rejected, StillPending, TransportFault]


def is_terminal(signal: StatusSignal) -> bool:
    return isinstance(signal, (Approved, Rejected))


def _from_status_field(body: dict[str, Any]) -> Optional[StatusSignal]:
    status = body.get("status")
    if status == STATUS_APPROVED:
        txn = body.get("transaction")
        return Approved(detail=txn if isinstance(txn, dict) else body)
    if status in STATUS_REJECTED:
        reason = body.get("error") or body.get("message") or "Transaction rejected"
        return Rejected(reason=str(reason), detail=body)
    if status == STATUS_PENDING:
        return StillPending(note="status PENDING")
    return None


def _from_code(source: dict[str, Any], body: dict[str, Any]) -> StatusSignal:
    code = source.get("approval_code")
    if code in APPROVED_CODES:
        return Approved(detail=source)
    if code == SENDING_TRANSACTION_ID:
        return StillPending(note="approval code ST")
    reason = source.get("response_message") or f"Transaction declined (Code: {code})"
    return Rejected(reason=str(reason), detail=body)


def _from_approval_code(body: dict[str, Any]) -> Optional[StatusSignal]:
    if "approval_code" not in body:
        return None
    return _from_code(body, body)


def _from_nested_transaction(body: dict[str, Any]) -> Optional[StatusSignal]:
    txn = body.get("transaction")
    if not isinstance(txn, dict):
        return None
    return _from_code(txn, body)


def _from_error_body(body: dict[str, Any]) -> Optional[StatusSignal]:
    if "error_code" in body or "error_message" in body:
        return Rejected(reason=str(body.get("error_message") or "Transaction failed"), detail=body)
    return None


_SHAPES: tuple[Callable[[dict[str, Any]], Optional[StatusSignal]], ...] = (
    _from_status_field,
    _from_approval_code,
    _from_nested_transaction,
    _from_error_body,
)


def classify_status_reply(reply: TerminalReply) -> StatusSignal:
    """Classify one status-check reply; shapes are tried in a fixed order."""
    body = reply.data
    if not reply.ok:
        if isinstance(body, dict) and body.get("error_message"):
            return TransportFault(reason=str(body["error_message"]))
        return TransportFault(reason=f"Status check failed (HTTP {reply.status_code})")
    if not isinstance(body, dict):
        return StillPending(note="unrecognized body")
    for shape in _SHAPES:
        signal = shape(body)
        if signal is not None:
            return signal
    return StillPending(note="unrecognized body")


# ---- Policy and poller ----

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollingPolicy:
    """Interval, attempt bound and termination predicate for one poll."""

    interval_ms: int = 2000
    max_attempts: int = 60
    sleep: SleepFn = field(default=asyncio.sleep, compare=False)

    def with_overrides(
        self, *, interval_ms: Optional[int] = None, max_attempts: Optional[int] = None
    ) -> "PollingPolicy":
        changes: dict[str, Any] = {}
        if interval_ms is not None:
            changes["interval_ms"] = interval_ms
        if max_attempts is not None:
            changes["max_attempts"] = max_attempts
        return replace(self, **changes) if changes else self

    def retrying(self, before_sleep: Optional[Callable[[Any], None]] = None) -> AsyncRetrying:
        # Stopping without a terminal signal hands back the last one
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.interval_ms / 1000),
            retry=retry_if_result(lambda signal: not is_terminal(signal)),
            retry_error_callback=lambda state: state.outcome.result(),
            before_sleep=before_sleep,
            sleep=self.sleep,
        )


class PollOutcome(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    detail: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    attempts: int = 0


class StatusPoller:
    def __init__(self, gateway: TerminalGateway, policy: Optional[PollingPolicy] = None) -> None:
        self.gateway = gateway
        self.policy = policy or PollingPolicy()

    async def _check_once(self, req: TransactionStatusRequest) -> StatusSignal:
        try:
            reply = await self.gateway.get_transaction_status(req)
        except Exception as exc:
            return TransportFault(reason=str(exc) or type(exc).__name__)
        return classify_status_reply(reply)

    async def poll(
        self,
        trx_id: str,
        session: TerminalSession,
        *,
        interval_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> PollResult:
        policy = self.policy.with_overrides(interval_ms=interval_ms, max_attempts=max_attempts)
        req = TransactionStatusRequest(
            session_id=session.session_id,
            terminal_id=session.terminal_id,
            station_number=session.station_number,
            cashier_id=session.cashier_id,
            trx_id=trx_id,
        )
        attempts = 0

        async def attempt() -> StatusSignal:
            nonlocal attempts
            attempts += 1
            return await self._check_once(req)

        def log_attempt(state: Any) -> None:
            signal = state.outcome.result()
            logger.debug(
                "status_poll_attempt",
                trx_id=trx_id,
                attempt=state.attempt_number,
                max_attempts=policy.max_attempts,
                signal=type(signal).__name__,
                note=getattr(signal, "note", None) or getattr(signal, "reason", None),
            )

        signal = await policy.retrying(before_sleep=log_attempt)(attempt)

        if isinstance(signal, Approved):
            return PollResult(PollOutcome.APPROVED, detail=signal.detail, attempts=attempts)
        if isinstance(signal, Rejected):
            return PollResult(
                PollOutcome.REJECTED, detail=signal.detail, error=signal.reason, attempts=attempts
            )
        if isinstance(signal, TransportFault):
            logger.warning("status_poll_transport_exhausted", trx_id=trx_id, reason=signal.reason)
            return PollResult(PollOutcome.ERROR, error=signal.reason, attempts=attempts)
        logger.warning("status_poll_timeout", trx_id=trx_id, attempts=attempts)
        return PollResult(
            PollOutcome.TIMEOUT,
            error=f"polling exceeded {policy.max_attempts} attempts",
            attempts=attempts,
        )
