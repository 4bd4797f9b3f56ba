"""
Terminal and split-payment settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so the terminal integration can be
configured (ECR__*, SPLIT__*) without touching the application settings.
"""
from __future__ import annotations

from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class TerminalTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 30.0
    write: float = 10.0
    total: float = 30.0


class TerminalRetry(BaseModel):
    # Applies to status checks only; starting a sale is never retried
    max: int = 2
    base_backoff: float = 0.2


class ReceiptDefaults(BaseModel):
    receipt_email: Literal["yes", "no"] = "yes"
    receipt_output: Literal["BOTH", "HTML", "PRINTER", "NONE", "both"] = "BOTH"
    manual_entry_indicator: Literal["yes", "no"] = "no"


class TerminalSettings(BaseModel):
    terminal_url: str = "http://192.168.0.212:2030"
    api_key: Optional[str] = None
    terminal_id: Optional[str] = None
    station_number: Optional[str] = None
    cashier_id: Optional[str] = None
    timeouts: TerminalTimeouts = Field(default_factory=TerminalTimeouts)
    retry: TerminalRetry = Field(default_factory=TerminalRetry)
    receipt: ReceiptDefaults = Field(default_factory=ReceiptDefaults)


class SplitPaymentSettings(BaseModel):
    store: Literal["auto", "memory", "redis"] = "auto"
    retention_hours: int = 24
    cleanup_probability: float = 0.1
    polling_interval_ms: int = 2000
    max_polling_attempts: int = 60
    max_parts: int = 10


class IntegrationSettings(BaseSettings):
    ecr: TerminalSettings = Field(default_factory=TerminalSettings)
    split: SplitPaymentSettings = Field(default_factory=SplitPaymentSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


integration_settings = IntegrationSettings()
