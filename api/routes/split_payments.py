"""
Split payment API routes.

Keep this thin: request gating, orchestration and store access live in the
application services.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import (
    get_split_payment_orchestrator,
    get_split_payment_status_service,
)
from application.dtos.split_payments import SplitPaymentRequest, SplitPaymentStatusQuery
from application.services.split_payment_orchestrator import (
    SplitPaymentOrchestrator,
    SplitPaymentStatusService,
)
from core.response import success_response


router = APIRouter(prefix="/ecr", tags=["Split Payments"])


@router.post(
    "/sales/split-payment",
    summary="Run a split payment",
    description=(
        "Charges one total across up to 10 sequential terminal transactions. "
        "Blocks until every part is approved or the first part fails; "
        "use split-payment-status from another request to follow progress."
    ),
)
async def run_split_payment(
    payload: SplitPaymentRequest,
    orchestrator: SplitPaymentOrchestrator = Depends(get_split_payment_orchestrator),
):
    payment = await orchestrator.run(payload)
    return success_response(data=payment.to_dict(), message=payment.message)


@router.post("/transaction/split-payment-status", summary="Split payment progress")
async def split_payment_status(
    query: SplitPaymentStatusQuery,
    service: SplitPaymentStatusService = Depends(get_split_payment_status_service),
):
    record = await service.get_status(query)
    return success_response(data=record, message=record.get("message", "Success"))
