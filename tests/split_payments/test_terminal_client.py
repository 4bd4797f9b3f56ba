import json

import httpx
import pytest

from application.dtos.split_payments import StartSaleRequest, TransactionStatusRequest
from core.settings import TerminalRetry, TerminalSettings
from infrastructure.external.terminal import EcrTerminalClient, TerminalTransportError, get_terminal_gateway


CONFIG = TerminalSettings(terminal_url="http://terminal.test:2030/", api_key="k-123", retry=TerminalRetry(max=2))

SALE = StartSaleRequest(
    terminal_id="T-01",
    station_number="1234",
    cashier_id="0001",
    reference="100",
    last_reference="99",
    session_id="SESSION-1",
    receipt_email="yes",
    amounts={"total": "3.74"},
    receipt_output="BOTH",
    manual_entry_indicator="no",
)

STATUS = TransactionStatusRequest(
    session_id="SESSION-1", terminal_id="T-01", station_number="1234", cashier_id="0001", trx_id="TRX-1"
)


def _client(handler):
    return EcrTerminalClient(CONFIG, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_start_sale_posts_payload_with_api_key():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json={"trx_id": "TRX-1", "approval_code": "ST"})

    client = _client(handler)
    reply = await client.start_sale(SALE)
    await client.aclose()

    assert reply.status_code == 200
    assert reply.data["trx_id"] == "TRX-1"
    request = seen[0]
    assert request.url.path == "/startSale"
    assert request.headers["api_key"] == "k-123"
    body = json.loads(request.content)
    assert body["amounts"] == {"total": "3.74"}
    assert body["process_cashback"] == "no"
    assert "force_duplicate" not in body


@pytest.mark.asyncio
async def test_ath_movil_endpoint():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, json={"trx_id": "TRX-2"})

    await _client(handler).start_ath_movil_sale(SALE)
    assert paths == ["/startAthMovilSale"]


@pytest.mark.asyncio
async def test_error_status_is_returned_not_raised():
    client = _client(lambda r: httpx.Response(400, json={"error_code": "E1", "error_message": "Bad session"}))
    reply = await client.start_sale(SALE)
    assert reply.status_code == 400
    assert not reply.ok
    assert reply.data["error_message"] == "Bad session"


@pytest.mark.asyncio
async def test_non_json_body_is_kept_as_text():
    reply = await _client(lambda r: httpx.Response(502, text="Bad Gateway")).start_sale(SALE)
    assert reply.data == "Bad Gateway"


@pytest.mark.asyncio
async def test_timeout_becomes_synthetic_reply():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    reply = await _client(handler).start_sale(SALE)
    assert reply.status_code == 504
    assert reply.data == {"error_code": "TIMEOUT", "error_message": "Terminal request timeout"}


@pytest.mark.asyncio
async def test_start_sale_is_sent_once_on_connection_error():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TerminalTransportError):
        await _client(handler).start_sale(SALE)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_status_check_is_retried_on_transport_error():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"approval_code": "00"})

    reply = await _client(handler).get_transaction_status(STATUS)
    assert reply.data == {"approval_code": "00"}
    assert len(calls) == 3
    assert calls[-1].url.path == "/getTrxStatus"


def test_factory_returns_terminal_client():
    assert isinstance(get_terminal_gateway(CONFIG), EcrTerminalClient)
