from .entity import (
    PaymentMethod,
    PartStatus,
    SplitPart,
    SplitPayment,
    SplitPaymentPart,
    SplitPaymentStatus,
    TaxAmounts,
    new_split_trx_id,
)
from .allocator import allocate
from .reference_chain import ReferenceChain
from .repository import SplitPaymentStore
from .validation import validate_split_configuration, validate_tax_amounts

__all__ = [
    "PaymentMethod",
    "PartStatus",
    "SplitPart",
    "SplitPayment",
    "SplitPaymentPart",
    "SplitPaymentStatus",
    "TaxAmounts",
    "new_split_trx_id",
    "allocate",
    "ReferenceChain",
    "SplitPaymentStore",
    "validate_split_configuration",
    "validate_tax_amounts",
]
