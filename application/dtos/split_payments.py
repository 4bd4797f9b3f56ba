"""
Split payment DTOs (Pydantic v2) used at application boundaries.

Amounts travel as decimal strings ("6.40") exactly as the terminal expects
them; numeric JSON values are accepted and converted.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.split_payment import SplitPart

YesNo = Literal["yes", "no"]
ReceiptOutput = Literal["BOTH", "HTML", "PRINTER", "NONE", "both"]


def _stringify(v: Any) -> Any:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float, Decimal)):
        return str(v)
    return v


class TransactionAmounts(BaseModel):
    total: Optional[str] = None
    base_state_tax: Optional[str] = None
    base_reduced_tax: Optional[str] = None
    tip: Optional[str] = None
    state_tax: Optional[str] = None
    reduced_tax: Optional[str] = None
    city_tax: Optional[str] = None
    cashback: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _numbers_to_str(cls, v: Any) -> Any:
        return _stringify(v)


class SplitPartRequest(BaseModel):
    payment_method: str
    percentage: float = Field(allow_inf_nan=False)
    label: Optional[str] = None

    def to_domain(self) -> SplitPart:
        return SplitPart(
            payment_method=self.payment_method,
            percentage=Decimal(str(self.percentage)),
            label=self.label,
        )


class SplitPaymentRequest(BaseModel):
    """One logical payment to split across sequential terminal transactions.

    Presence of reference/last_reference/amounts/session_id/splits is
    checked by the orchestrator so the caller gets a MISSING_FIELD error
    rather than a schema error.
    """

    terminal_id: Optional[str] = None
    station_number: Optional[str] = None
    cashier_id: Optional[str] = None
    reference: Optional[str] = None
    last_reference: Optional[str] = None
    session_id: Optional[str] = None
    amounts: Optional[TransactionAmounts] = None
    splits: Optional[list[SplitPartRequest]] = None
    receipt_email: Optional[YesNo] = None
    receipt_output: Optional[ReceiptOutput] = None
    manual_entry_indicator: Optional[YesNo] = None
    force_duplicate: Optional[YesNo] = None
    polling_interval: Optional[int] = Field(default=None, gt=0, description="milliseconds")
    max_polling_attempts: Optional[int] = Field(default=None, gt=0)

    @field_validator("reference", "last_reference", "station_number", "cashier_id", mode="before")
    @classmethod
    def _ids_to_str(cls, v: Any) -> Any:
        return _stringify(v)


class SplitPaymentStatusQuery(BaseModel):
    split_trx_id: Optional[str] = None
    session_id: Optional[str] = None
    terminal_id: Optional[str] = None
    station_number: Optional[str] = None
    cashier_id: Optional[str] = None


class TerminalSession(BaseModel):
    """Terminal identity and receipt preferences shared by every part."""

    model_config = ConfigDict(frozen=True)

    terminal_id: str
    station_number: str
    cashier_id: str
    session_id: str
    receipt_email: YesNo = "yes"
    receipt_output: ReceiptOutput = "BOTH"
    manual_entry_indicator: YesNo = "no"
    force_duplicate: Optional[YesNo] = None


# ---- Terminal wire payloads ----

class StartSaleRequest(BaseModel):
    terminal_id: str
    station_number: str
    cashier_id: str
    reference: str
    last_reference: str
    session_id: str
    receipt_email: YesNo
    process_cashback: YesNo = "no"
    amounts: dict[str, str]
    receipt_output: ReceiptOutput
    manual_entry_indicator: YesNo
    force_duplicate: Optional[YesNo] = None


class TransactionStatusRequest(BaseModel):
    session_id: str
    terminal_id: str
    station_number: str
    cashier_id: str
    trx_id: str
