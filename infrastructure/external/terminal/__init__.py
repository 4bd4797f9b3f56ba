"""
Factory for the ECR terminal gateway.
"""
from __future__ import annotations

from typing import Optional

from application.ports.terminal_gateway import TerminalGateway
from core.settings import TerminalSettings, integration_settings
from .client import EcrTerminalClient
from .exceptions import TerminalTransportError


def get_terminal_gateway(config: Optional[TerminalSettings] = None) -> TerminalGateway:
    return EcrTerminalClient(config or integration_settings.ecr)


__all__ = ["EcrTerminalClient", "TerminalTransportError", "get_terminal_gateway"]
