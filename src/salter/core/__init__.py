# Salter: Core Module - Shared Utilities
#
# - Audit logging
# - Entity base type
# - Secret buffer helpers

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    configure_audit_logger,
    get_audit_logger,
    log_security_event,
)
from .entity import Entity
from .secure_memory import to_secret_buffer, zero_buffer

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "configure_audit_logger",
    "get_audit_logger",
    "log_security_event",
    # Entities
    "Entity",
    # Secrets
    "to_secret_buffer",
    "zero_buffer",
]
