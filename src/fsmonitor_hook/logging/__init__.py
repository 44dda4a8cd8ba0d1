"""Structured logging utilities."""

from .audit import AuditEvent, JsonlAuditLogger, describe_request, utc_timestamp

__all__ = ["AuditEvent", "JsonlAuditLogger", "describe_request", "utc_timestamp"]
