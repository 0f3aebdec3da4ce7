"""
Audit logging for security-relevant events.

Provides structured audit logging for token acquisition and identity
verification calls. Credentials, tokens and key material are never passed to
the audit logger.
"""

import logging
from typing import Any

import structlog

_audit_logger = structlog.wrap_logger(
    logging.getLogger("satusehat.audit"),
    wrapper_class=structlog.stdlib.BoundLogger,
)


class AuditEvent:
    """Constants for audit event types."""

    # Authentication events
    AUTH_SUCCESS = "auth.success"
    AUTH_FAILURE = "auth.failure"
    AUTH_COOLDOWN = "auth.cooldown"

    # KYC events
    KYC_VALIDATION_URL = "kyc.validation_url"
    KYC_VERIFICATION_CODE = "kyc.verification_code"

    # Consent events
    CONSENT_READ = "consent.read"
    CONSENT_UPDATE = "consent.update"


# Logging constants
IDENTIFIER_VISIBLE_CHARS = 4


def mask_identifier(value: str, visible_chars: int = IDENTIFIER_VISIBLE_CHARS) -> str:
    """Mask a national identity number, keeping only the last few digits."""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return "*" * (len(value) - visible_chars) + value[-visible_chars:]


def audit_log(
    event: str,
    *,
    mode: str | None = None,
    client_id: str | None = None,
    patient_id: str | None = None,
    nik: str | None = None,
    status_code: int | None = None,
    success: bool = True,
    error: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Log an audit event.

    Args:
        event: Event type from AuditEvent constants
        mode: Environment mode of the call
        client_id: Client ID the token was issued to
        patient_id: Optional IHS patient identifier
        nik: Optional national identity number (masked before logging)
        status_code: Optional upstream HTTP status
        success: Whether the operation succeeded
        error: Optional error message if failed
        details: Optional additional details
    """
    log_data: dict[str, Any] = {
        "audit_event": event,
        "success": success,
    }

    if mode:
        log_data["mode"] = mode
    if client_id:
        log_data["client_id"] = client_id
    if patient_id:
        log_data["patient_id"] = patient_id
    if nik:
        log_data["nik"] = mask_identifier(nik)
    if status_code is not None:
        log_data["status_code"] = status_code
    if error:
        log_data["error"] = error
    if details:
        log_data["details"] = details

    if success:
        _audit_logger.info(event, **log_data)
    else:
        _audit_logger.warning(event, **log_data)
