"""Business exceptions shared by the domain and infrastructure layers.

The core layer only maps them to HTTP responses; the domain must not depend
back on core.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode
from shared.codes import terminal_codes


class BusinessException(Exception):
    """Base class for business exceptions"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class MissingFieldException(BusinessException):
    def __init__(self, field: str):
        super().__init__(
            code=BusinessCode.PARAM_MISSING,
            message=f"{field} is required",
            error_type="MissingField",
            details={"error_code": terminal_codes.MISSING_FIELD},
            field=field,
        )


class SplitConfigurationException(BusinessException):
    def __init__(self, message: str, *, part_number: int | None = None):
        details = {"error_code": terminal_codes.INVALID_SPLIT_CONFIG}
        if part_number is not None:
            details["part_number"] = part_number
        super().__init__(
            code=BusinessCode.SPLIT_CONFIG_INVALID,
            message=message,
            error_type="InvalidSplitConfig",
            details=details,
            field="splits",
        )


class TaxComplianceException(BusinessException):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(
            code=BusinessCode.TAX_VALIDATION_ERROR,
            message=message,
            error_type="TaxValidationError",
            details={"error_code": terminal_codes.TAX_VALIDATION_ERROR},
            field=field,
        )


class SplitPaymentNotFoundException(BusinessException):
    def __init__(self, split_trx_id: str):
        super().__init__(
            code=BusinessCode.SPLIT_PAYMENT_NOT_FOUND,
            message=(
                f"Split payment with ID {split_trx_id} not found. "
                "It may have expired or never existed."
            ),
            error_type="SplitPaymentNotFound",
            details={"error_code": terminal_codes.NOT_FOUND, "split_trx_id": split_trx_id},
        )
