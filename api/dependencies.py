"""
API dependencies - split payment services wired from app.state.

The lifespan in main.py builds the store and terminal gateway once per
process; tests replace them with app.dependency_overrides.
"""
from fastapi import Depends, Request

from application.ports.terminal_gateway import TerminalGateway
from application.services.part_initiator import PartTransactionInitiator
from application.services.split_payment_orchestrator import (
    SplitPaymentOrchestrator,
    SplitPaymentStatusService,
)
from application.services.status_poller import PollingPolicy, StatusPoller
from core.settings import integration_settings
from domain.split_payment import SplitPaymentStore


async def get_split_payment_store(request: Request) -> SplitPaymentStore:
    return request.app.state.split_payment_store


async def get_terminal_gateway(request: Request) -> TerminalGateway:
    return request.app.state.terminal_gateway


async def get_polling_policy() -> PollingPolicy:
    split = integration_settings.split
    return PollingPolicy(
        interval_ms=split.polling_interval_ms,
        max_attempts=split.max_polling_attempts,
    )


async def get_split_payment_orchestrator(
    store: SplitPaymentStore = Depends(get_split_payment_store),
    gateway: TerminalGateway = Depends(get_terminal_gateway),
    policy: PollingPolicy = Depends(get_polling_policy),
) -> SplitPaymentOrchestrator:
    return SplitPaymentOrchestrator(
        store=store,
        initiator=PartTransactionInitiator(gateway),
        poller=StatusPoller(gateway, policy),
        terminal_defaults=integration_settings.ecr,
        max_parts=integration_settings.split.max_parts,
    )


async def get_split_payment_status_service(
    store: SplitPaymentStore = Depends(get_split_payment_store),
) -> SplitPaymentStatusService:
    return SplitPaymentStatusService(store)
