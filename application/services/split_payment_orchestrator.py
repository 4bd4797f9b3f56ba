"""
Split payment use-cases.

SplitPaymentOrchestrator drives one split payment from request to a final
aggregate: validate, allocate, then for each part in order initiate and
poll, persisting a snapshot after every transition so the status query
sees live progress. Collaborator failures are captured into the aggregate;
only pre-aggregate validation errors are raised to the caller.

Approved parts that precede a failure are left approved. Voiding them is a
manual operator action.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from application.dtos.split_payments import (
    SplitPaymentRequest,
    SplitPaymentStatusQuery,
    TerminalSession,
)
from application.services.part_initiator import InitiationFailed, PartTransactionInitiator
from application.services.status_poller import PollOutcome, PollResult, StatusPoller
from core.logging_config import get_logger
from core.settings import TerminalSettings
from domain.common.exceptions import MissingFieldException, SplitPaymentNotFoundException
from domain.split_payment import (
    PartStatus,
    ReferenceChain,
    SplitPart,
    SplitPayment,
    SplitPaymentPart,
    SplitPaymentStatus,
    SplitPaymentStore,
    TaxAmounts,
    allocate,
    new_split_trx_id,
    validate_split_configuration,
    validate_tax_amounts,
)
from domain.split_payment.validation import MAX_SPLIT_PARTS


logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_percentage(value: Decimal) -> str:
    return f"{float(value):g}"


def default_label(part_number: int, percentage: Decimal) -> str:
    return f"Payment {part_number} ({_format_percentage(percentage)}%)"


def _require(value: object, name: str) -> None:
    if value is None or value == "":
        raise MissingFieldException(name)


def _terminal_identity(
    source: SplitPaymentRequest,
    defaults: TerminalSettings,
) -> tuple[str, str, str]:
    terminal_id = source.terminal_id or defaults.terminal_id
    station_number = source.station_number or defaults.station_number
    cashier_id = source.cashier_id or defaults.cashier_id
    _require(terminal_id, "terminal_id")
    _require(station_number, "station_number")
    _require(cashier_id, "cashier_id")
    return terminal_id, station_number, cashier_id


class SplitPaymentOrchestrator:
    def __init__(
        self,
        store: SplitPaymentStore,
        initiator: PartTransactionInitiator,
        poller: StatusPoller,
        *,
        terminal_defaults: Optional[TerminalSettings] = None,
        max_parts: int = MAX_SPLIT_PARTS,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = new_split_trx_id,
    ) -> None:
        self.store = store
        self.initiator = initiator
        self.poller = poller
        self.terminal_defaults = terminal_defaults or TerminalSettings()
        self.max_parts = max_parts
        self.clock = clock
        self.id_factory = id_factory

    # ---- request gate ----

    def _session(self, req: SplitPaymentRequest) -> TerminalSession:
        terminal_id, station_number, cashier_id = _terminal_identity(req, self.terminal_defaults)
        receipt = self.terminal_defaults.receipt
        return TerminalSession(
            terminal_id=terminal_id,
            station_number=station_number,
            cashier_id=cashier_id,
            session_id=req.session_id,
            receipt_email=req.receipt_email or receipt.receipt_email,
            receipt_output=req.receipt_output or receipt.receipt_output,
            manual_entry_indicator=req.manual_entry_indicator or receipt.manual_entry_indicator,
            force_duplicate=req.force_duplicate,
        )

    def prepare(
        self, req: SplitPaymentRequest
    ) -> tuple[TerminalSession, ReferenceChain, TaxAmounts, list[SplitPart]]:
        """Run every check that must pass before a record is created."""
        _require(req.reference, "reference")
        _require(req.last_reference, "last_reference")
        _require(req.amounts, "amounts")
        _require(req.session_id, "session_id")
        if req.splits is None:
            raise MissingFieldException("splits")
        _require(req.amounts.total, "amounts.total")

        session = self._session(req)

        amounts = req.amounts.model_dump(exclude_none=True)
        validate_tax_amounts(amounts)

        parts = [s.to_domain() for s in req.splits]
        validate_split_configuration(parts, max_parts=self.max_parts)

        chain = ReferenceChain.start(req.reference, req.last_reference)
        return session, chain, TaxAmounts.from_dict(amounts), parts

    # ---- persistence ----

    async def _persist(self, payment: SplitPayment) -> None:
        try:
            updated = await self.store.update(payment.split_trx_id, payment.to_dict())
        except Exception as exc:
            logger.error(
                "split_payment_persist_failed",
                split_trx_id=payment.split_trx_id,
                error=str(exc),
            )
            return
        if not updated:
            logger.warning("split_payment_record_missing", split_trx_id=payment.split_trx_id)

    # ---- main loop ----

    async def run(self, req: SplitPaymentRequest) -> SplitPayment:
        session, chain, total, split_parts = self.prepare(req)

        payment = SplitPayment(
            split_trx_id=self.id_factory(),
            reference=req.reference,
            total_amounts=total,
            parts=[
                SplitPaymentPart(
                    part_number=number,
                    payment_method=sp.payment_method,
                    label=sp.label or default_label(number, sp.percentage),
                    amounts=allocate(total, sp.percentage),
                )
                for number, sp in enumerate(split_parts, start=1)
            ],
        )
        await self.store.save(payment.split_trx_id, payment.to_dict())
        logger.info(
            "split_payment_created",
            split_trx_id=payment.split_trx_id,
            parts=len(payment.parts),
            total=total.to_dict()["total"],
            session_id=session.session_id,
        )

        total_parts = len(payment.parts)
        for part in payment.parts:
            payment.start_part(part)
            part.mark_processing(
                reference=chain.current,
                last_reference=chain.last_reference,
                total_parts=total_parts,
                now=self.clock(),
            )
            await self._persist(payment)
            logger.info(
                "split_part_started",
                split_trx_id=payment.split_trx_id,
                part_number=part.part_number,
                payment_method=part.payment_method,
                reference=part.reference,
                last_reference=part.last_reference,
                amount=part.amounts.to_dict()["total"],
            )

            try:
                started = await self.initiator.initiate(
                    part.payment_method, part.amounts, session, chain
                )
            except Exception as exc:
                started = InitiationFailed(error=str(exc) or type(exc).__name__)

            if isinstance(started, InitiationFailed):
                part.mark_error(started.error, now=self.clock())
                payment.mark_failed(f"Part {part.part_number} failed to start: {started.error}")
                await self._persist(payment)
                logger.warning(
                    "split_part_initiation_failed",
                    split_trx_id=payment.split_trx_id,
                    part_number=part.part_number,
                    error=started.error,
                )
                return self._finish(payment)

            part.attach_transaction(started.trx_id, started.payload)
            await self._persist(payment)

            try:
                result = await self.poller.poll(
                    started.trx_id,
                    session,
                    interval_ms=req.polling_interval,
                    max_attempts=req.max_polling_attempts,
                )
            except Exception as exc:
                result = PollResult(PollOutcome.ERROR, error=str(exc) or type(exc).__name__)

            if result.outcome == PollOutcome.APPROVED:
                part.mark_approved(result.detail, now=self.clock())
                await self._persist(payment)
                logger.info(
                    "split_part_approved",
                    split_trx_id=payment.split_trx_id,
                    part_number=part.part_number,
                    trx_id=part.trx_id,
                    attempts=result.attempts,
                )
                chain = chain.advance()
                continue

            reason = f"{result.outcome.value}: {result.error}"
            if result.outcome == PollOutcome.REJECTED:
                part.mark_rejected(reason, now=self.clock())
            else:
                part.mark_error(reason, now=self.clock())
            payment.mark_failed(f"Part {part.part_number} {reason}")
            await self._persist(payment)
            logger.warning(
                "split_part_failed",
                split_trx_id=payment.split_trx_id,
                part_number=part.part_number,
                trx_id=part.trx_id,
                outcome=result.outcome.value,
                error=result.error,
            )
            return self._finish(payment)

        payment.mark_completed()
        await self._persist(payment)
        return self._finish(payment)

    def _finish(self, payment: SplitPayment) -> SplitPayment:
        approved = [p.part_number for p in payment.parts if p.status == PartStatus.APPROVED]
        if payment.status == SplitPaymentStatus.COMPLETED:
            logger.info(
                "split_payment_completed",
                split_trx_id=payment.split_trx_id,
                parts=len(payment.parts),
            )
        else:
            # Approved parts are reported for manual voiding
            logger.warning(
                "split_payment_failed",
                split_trx_id=payment.split_trx_id,
                message=payment.message,
                approved_parts=approved,
            )
        return payment


class SplitPaymentStatusService:
    """Read-only lookup of split payment progress."""

    def __init__(self, store: SplitPaymentStore) -> None:
        self.store = store

    async def get_status(self, query: SplitPaymentStatusQuery) -> dict:
        _require(query.split_trx_id, "split_trx_id")
        _require(query.session_id, "session_id")

        record = await self.store.get(query.split_trx_id)
        if record is None:
            raise SplitPaymentNotFoundException(query.split_trx_id)
        logger.debug(
            "split_payment_status_read",
            split_trx_id=query.split_trx_id,
            status=record.get("status"),
        )
        return record
