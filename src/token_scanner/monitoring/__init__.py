"""Monitoring module."""

from .monitor import MonitoringEngine, ProviderHealthStatus, RequestEvent, redact_url

__all__ = ["MonitoringEngine", "ProviderHealthStatus", "RequestEvent", "redact_url"]
