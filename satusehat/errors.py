"""
Custom error types for the SatuSehat client.

This module provides specific error classes for different failure scenarios,
enabling better error handling and more informative error messages.
"""

from typing import Any


class SatuSehatError(Exception):
    """Base exception for all SatuSehat client errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# Configuration Errors


class ConfigurationError(SatuSehatError):
    """Raised when there's a configuration error."""

    pass


class KeyFileError(ConfigurationError):
    """Raised when the KYC public key file cannot be read or parsed."""

    def __init__(self, path: str, reason: str | None = None):
        self.path = path
        message = f"Unable to load KYC public key: {path}"
        if reason:
            message += f". {reason}"
        super().__init__(message, details={"path": path, "reason": reason})


# Authentication Errors


class AuthError(SatuSehatError):
    """Base exception for token acquisition errors."""

    pass


class CredentialsMissingError(AuthError):
    """Raised when client secret or secret key is not configured."""

    def __init__(self, missing: list[str] | None = None):
        self.missing = missing or ["client_secret", "secret_key"]
        message = (
            'Missing credentials. The "client_secret" and "secret_key" config are required.'
        )
        super().__init__(message, details={"missing": self.missing})


class AuthenticationFailedError(AuthError):
    """Raised when the token endpoint rejects the credentials."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(
            f"Authentication failed. {body}",
            details={"status": status, "body": body},
        )


class AuthCooldownError(AuthError):
    """Raised when a token request is attempted inside the failure cooldown."""

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(
            f"Token requests are paused after a failed attempt. Retry in {retry_after:.0f}s",
            details={"retry_after": retry_after},
        )


# Transport Errors


class TransportError(SatuSehatError):
    """Raised when an HTTP request fails at the network level."""

    def __init__(self, url: str, original_error: str | None = None):
        self.url = url
        self.original_error = original_error
        message = f"Request to {url} failed"
        if original_error:
            message += f": {original_error}"
        super().__init__(
            message,
            details={"url": url, "original_error": original_error},
        )


# Envelope Encryption Errors


class EnvelopeError(SatuSehatError):
    """Base exception for KYC envelope encryption errors."""

    pass


class IntegrityError(EnvelopeError):
    """Raised when an encrypted message fails authentication."""

    def __init__(self, message: str = "Encrypted message failed integrity check"):
        super().__init__(message)


class MalformedEnvelopeError(EnvelopeError):
    """Raised when a response body is not an encrypted message."""

    def __init__(self, body: str, reason: str | None = None):
        self.body = body
        message = "Response is not an encrypted message"
        if reason:
            message += f": {reason}"
        super().__init__(message, details={"body": body, "reason": reason})
