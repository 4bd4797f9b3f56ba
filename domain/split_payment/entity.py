"""
Split payment aggregate - one logical charge divided into terminal transactions.
"""
from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException


class PaymentMethod(str, Enum):
    """Payment methods a split part may use"""
    CARD = "card"
    ATH_MOVIL = "ath-movil"  # mobile wallet


class SplitPaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PartStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"
    ERROR = "error"


TAX_PAIR_FIELDS = ("base_state_tax", "base_reduced_tax", "state_tax", "reduced_tax")
AMOUNT_FIELDS = (
    "total",
    "base_state_tax",
    "base_reduced_tax",
    "tip",
    "state_tax",
    "reduced_tax",
    "city_tax",
    "cashback",
)


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """UTC ISO8601 with millisecond precision and a trailing Z"""
    if dt is None:
        return None
    return _ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_split_trx_id() -> str:
    """Generate a split identifier: SPT-<epoch millis>-<7 base36 chars>"""
    alphabet = string.digits + string.ascii_lowercase
    suffix = "".join(secrets.choice(alphabet) for _ in range(7))
    return f"SPT-{int(time.time() * 1000)}-{suffix}".upper()


@dataclass(frozen=True)
class TaxAmounts:
    """
    Tax-structured amount.

    The standard-rate pair (base_state_tax/state_tax) and the reduced-rate
    pair (base_reduced_tax/reduced_tax) are either all present or all absent.
    A value of 0.00 is present; None is absent.
    """

    total: Decimal
    base_state_tax: Optional[Decimal] = None
    base_reduced_tax: Optional[Decimal] = None
    tip: Optional[Decimal] = None
    state_tax: Optional[Decimal] = None
    reduced_tax: Optional[Decimal] = None
    city_tax: Optional[Decimal] = None
    cashback: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaxAmounts":
        values = {
            name: Decimal(str(data[name]))
            for name in AMOUNT_FIELDS
            if data.get(name) is not None
        }
        return cls(**values)

    def present_fields(self) -> dict[str, Decimal]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def has_tax_pairs(self) -> bool:
        return all(getattr(self, name) is not None for name in TAX_PAIR_FIELDS)

    def to_dict(self) -> dict[str, str]:
        return {name: f"{value:.2f}" for name, value in self.present_fields().items()}


@dataclass(frozen=True)
class SplitPart:
    """One requested part of a split payment (immutable input)"""
    payment_method: str
    percentage: Decimal
    label: Optional[str] = None


@dataclass
class SplitPaymentPart:
    """
    Progress of one part.

    Lifecycle is one-directional:
    pending -> processing -> approved | rejected | error
    """

    part_number: int
    payment_method: str
    label: str
    amounts: TaxAmounts
    status: PartStatus = PartStatus.PENDING
    message: Optional[str] = None
    trx_id: Optional[str] = None
    reference: Optional[str] = None
    last_reference: Optional[str] = None
    transaction: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def _require(self, *allowed: PartStatus, target: PartStatus) -> None:
        if self.status not in allowed:
            raise DomainValidationException(
                f"Part {self.part_number} cannot move from {self.status.value} to {target.value}",
                field="status",
            )

    def mark_processing(
        self,
        *,
        reference: str,
        last_reference: str,
        total_parts: int,
        now: Optional[datetime] = None,
    ) -> None:
        self._require(PartStatus.PENDING, target=PartStatus.PROCESSING)
        self.status = PartStatus.PROCESSING
        self.reference = reference
        self.last_reference = last_reference
        self.message = f"Processing payment {self.part_number} of {total_parts}"
        self.started_at = _ensure_utc(now) or datetime.now(timezone.utc)

    def attach_transaction(self, trx_id: str, detail: Optional[dict[str, Any]] = None) -> None:
        self._require(PartStatus.PROCESSING, target=PartStatus.PROCESSING)
        self.trx_id = trx_id
        if detail is not None:
            self.transaction = detail

    def mark_approved(
        self, detail: Optional[dict[str, Any]] = None, *, now: Optional[datetime] = None
    ) -> None:
        self._require(PartStatus.PROCESSING, target=PartStatus.APPROVED)
        self.status = PartStatus.APPROVED
        self.message = "Transaction approved"
        if detail is not None:
            self.transaction = detail
        self.completed_at = _ensure_utc(now) or datetime.now(timezone.utc)

    def mark_rejected(self, error: str, *, now: Optional[datetime] = None) -> None:
        self._require(PartStatus.PROCESSING, target=PartStatus.REJECTED)
        self.status = PartStatus.REJECTED
        self.error = error
        self.completed_at = _ensure_utc(now) or datetime.now(timezone.utc)

    def mark_error(self, error: str, *, now: Optional[datetime] = None) -> None:
        self._require(PartStatus.PROCESSING, target=PartStatus.ERROR)
        self.status = PartStatus.ERROR
        self.error = error
        self.completed_at = _ensure_utc(now) or datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "part_number": self.part_number,
            "payment_method": self.payment_method,
            "label": self.label,
            "status": self.status.value,
            "amounts": self.amounts.to_dict(),
        }
        optional = {
            "message": self.message,
            "trx_id": self.trx_id,
            "reference": self.reference,
            "last_reference": self.last_reference,
            "transaction": self.transaction,
            "error": self.error,
            "started_at": format_timestamp(self.started_at),
            "completed_at": format_timestamp(self.completed_at),
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class SplitPayment:
    """
    Split payment aggregate root.

    Business rules:
    1. Parts are processed strictly in order, one at a time
    2. The aggregate is completed only when every part is approved
    3. Any part ending in rejected/error fails the whole aggregate
    4. Once completed or failed, the aggregate no longer changes
    """

    split_trx_id: str
    reference: str
    total_amounts: TaxAmounts
    parts: list[SplitPaymentPart] = field(default_factory=list)
    status: SplitPaymentStatus = SplitPaymentStatus.PROCESSING
    message: str = "Starting split payment processing"

    def is_final(self) -> bool:
        return self.status in (SplitPaymentStatus.COMPLETED, SplitPaymentStatus.FAILED)

    def _require_open(self) -> None:
        if self.is_final():
            raise DomainValidationException(
                f"Split payment {self.split_trx_id} is already {self.status.value}",
                field="status",
            )

    def start_part(self, part: SplitPaymentPart) -> None:
        self._require_open()
        self.message = f"Processing part {part.part_number} of {len(self.parts)}"

    def mark_completed(self) -> None:
        self._require_open()
        pending = [p.part_number for p in self.parts if p.status != PartStatus.APPROVED]
        if pending:
            raise DomainValidationException(
                f"Cannot complete split payment with unapproved parts: {pending}",
                field="status",
            )
        self.status = SplitPaymentStatus.COMPLETED
        self.message = "All split payments completed successfully"

    def mark_failed(self, message: str) -> None:
        self._require_open()
        self.status = SplitPaymentStatus.FAILED
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "split_trx_id": self.split_trx_id,
            "status": self.status.value,
            "message": self.message,
            "parts": [part.to_dict() for part in self.parts],
            "reference": self.reference,
            "total_amounts": self.total_amounts.to_dict(),
        }
