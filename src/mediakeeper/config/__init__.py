"""Configuration module for mediakeeper."""

from .settings import (
    DatabaseSettings,
    ObservabilitySettings,
    ProwlarrSettings,
    SabnzbdSettings,
    SchedulerSettings,
    Settings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "ObservabilitySettings",
    "ProwlarrSettings",
    "SabnzbdSettings",
    "SchedulerSettings",
    "Settings",
    "get_settings",
]
