"""Envelope encryption used by the KYC API."""

from satusehat.crypto.envelope import (
    EphemeralKeyPair,
    decrypt_message,
    encrypt_message,
    frame,
    is_encrypted_message,
    load_public_key,
    unframe,
)

__all__ = [
    "EphemeralKeyPair",
    "encrypt_message",
    "decrypt_message",
    "frame",
    "unframe",
    "is_encrypted_message",
    "load_public_key",
]
