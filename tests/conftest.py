"""Pytest bootstrap configuration.

Environment is fixed before any module imports application settings, so a
developer's .env (terminal address, Redis URL) never leaks into tests.
"""
import os

os.environ["SPLIT__STORE"] = "memory"
os.environ.pop("REDIS__URL", None)
os.environ.setdefault("ECR__TERMINAL_URL", "http://terminal.test:2030")
os.environ.setdefault("ECR__API_KEY", "test-api-key")

from typing import Any, Union  # noqa: E402

import pytest  # noqa: E402

from application.dtos.split_payments import (  # noqa: E402
    StartSaleRequest,
    TerminalSession,
    TransactionStatusRequest,
)
from application.ports.terminal_gateway import TerminalReply  # noqa: E402


Scripted = Union[TerminalReply, Exception]


def reply(data: Any, status_code: int = 200) -> TerminalReply:
    return TerminalReply(status_code=status_code, data=data)


def started(trx_id: str) -> TerminalReply:
    return reply({"trx_id": trx_id, "approval_code": "ST", "response_message": "SENDING TRANSACTION ID"})


def approved(trx_id: str) -> TerminalReply:
    return reply({"trx_id": trx_id, "approval_code": "00", "response_message": "APPROVED", "authorization_code": "A1"})


def pending(trx_id: str) -> TerminalReply:
    return reply({"trx_id": trx_id, "approval_code": "ST"})


class StubGateway:
    """Scripted terminal: start replies are consumed in order, status replies per trx_id.

    Every call is recorded in ``calls`` as (operation, payload) so tests can
    assert ordering and the reference chain.
    """

    def __init__(self, start: list[Scripted] | None = None, status: dict[str, list[Scripted]] | None = None):
        self.start_replies = list(start or [])
        self.status_replies = {k: list(v) for k, v in (status or {}).items()}
        self.calls: list[tuple[str, dict]] = []

    @staticmethod
    def _emit(item: Scripted) -> TerminalReply:
        if isinstance(item, Exception):
            raise item
        return item

    async def start_sale(self, req: StartSaleRequest) -> TerminalReply:
        self.calls.append(("start_sale", req.model_dump()))
        return self._emit(self.start_replies.pop(0))

    async def start_ath_movil_sale(self, req: StartSaleRequest) -> TerminalReply:
        self.calls.append(("start_ath_movil_sale", req.model_dump()))
        return self._emit(self.start_replies.pop(0))

    async def get_transaction_status(self, req: TransactionStatusRequest) -> TerminalReply:
        self.calls.append(("get_transaction_status", req.model_dump()))
        queue = self.status_replies[req.trx_id]
        # The last scripted reply repeats once the queue is drained
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        return self._emit(item)

    def operations(self) -> list[str]:
        return [op for op, _ in self.calls]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def session() -> TerminalSession:
    return TerminalSession(
        terminal_id="T-01",
        station_number="1234",
        cashier_id="0001",
        session_id="SESSION-1",
    )
