"""
Terminal gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
Replies are returned as-is (HTTP status + decoded body): the terminal's
error shapes vary too much to raise on, so interpretation belongs to the
application services.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from application.dtos.split_payments import StartSaleRequest, TransactionStatusRequest


@dataclass(frozen=True)
class TerminalReply:
    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class TerminalGateway(Protocol):
    """Gateway protocol for the ECR terminal.

    Implementations should be async and side-effect free beyond IO.
    """

    async def start_sale(self, req: StartSaleRequest) -> TerminalReply: ...

    async def start_ath_movil_sale(self, req: StartSaleRequest) -> TerminalReply: ...

    async def get_transaction_status(self, req: TransactionStatusRequest) -> TerminalReply: ...
