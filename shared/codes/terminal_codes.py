"""
ECR terminal specific codes and approval-code vocabulary.
"""
from __future__ import annotations

from enum import IntEnum


class TerminalCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Terminal/Network errors (6xxxx)
    TERMINAL_ERROR = 60000
    TERMINAL_UNREACHABLE = 60001
    TIMEOUT = 60003


# Symbolic error codes surfaced to API callers in error.details.error_code
MISSING_FIELD = "MISSING_FIELD"
INVALID_SPLIT_CONFIG = "INVALID_SPLIT_CONFIG"
TAX_VALIDATION_ERROR = "TAX_VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
TERMINAL_TIMEOUT = "TIMEOUT"

# Approval codes returned by the terminal on transaction status
APPROVED_CODES = frozenset({"00", "85"})
SENDING_TRANSACTION_ID = "ST"

# Explicit status field values
STATUS_APPROVED = "APPROVED"
STATUS_PENDING = "PENDING"
STATUS_REJECTED = frozenset({"REJECTED", "ERROR"})
