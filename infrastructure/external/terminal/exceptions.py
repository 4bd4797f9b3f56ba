"""
Terminal transport errors mapped to the unified BusinessException.
"""
from __future__ import annotations

from typing import Optional

from domain.common.exceptions import BusinessException
from shared.codes.terminal_codes import TerminalCode


class TerminalTransportError(BusinessException):
    """The terminal could not be reached or the connection broke mid-request."""

    def __init__(self, message: str, *, endpoint: str, details: Optional[dict] = None):
        full_details = {"endpoint": endpoint}
        if details:
            full_details.update(details)
        super().__init__(
            code=TerminalCode.TERMINAL_UNREACHABLE,
            message=message,
            error_type="TerminalTransportError",
            details=full_details,
        )
