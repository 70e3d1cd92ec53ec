"""Logging configuration and correlation context."""

from aip_reviewer.observability.logging import (
    configure_logging,
    correlation_scope,
    get_correlation_context,
)

__all__ = ["configure_logging", "correlation_scope", "get_correlation_context"]
