"""
Envelope encryption for the KYC validation URL endpoint.

A message is encrypted with a random AES-256-GCM key, and that key is wrapped
with RSA-OAEP (SHA-256) for the recipient. The binary layout is

    [wrapped AES key][12-byte IV][ciphertext][16-byte GCM tag]

base64-encoded in lines of 76 characters between BEGIN/END marker lines.
The client wraps its request key with the server's long-lived public key and
sends a per-call ephemeral public key inside the payload; the server wraps
its reply key with that ephemeral key.
"""

import asyncio
import base64
import binascii
import os
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from satusehat.config.logging import get_logger
from satusehat.constants import (
    AES_KEY_SIZE,
    ENVELOPE_BEGIN,
    ENVELOPE_END,
    ENVELOPE_LINE_WIDTH,
    GCM_IV_SIZE,
    GCM_TAG_SIZE,
    RSA_KEY_SIZE,
    RSA_PUBLIC_EXPONENT,
)
from satusehat.errors import IntegrityError, KeyFileError, MalformedEnvelopeError

logger = get_logger(__name__)


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def _zero(buffer: bytearray) -> None:
    buffer[:] = bytes(len(buffer))


class EphemeralKeyPair:
    """
    Per-call RSA key pair.

    Use as an async context manager; the private key is released on exit.

        async with await EphemeralKeyPair.generate() as key_pair:
            payload = {"public_key": key_pair.public_key_pem}
            ...
            plaintext = decrypt_message(reply, key_pair.private_key)
    """

    def __init__(self, private_key: rsa.RSAPrivateKey):
        self._private_key: rsa.RSAPrivateKey | None = private_key
        self.public_key_pem = (
            private_key.public_key()
            .public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            .decode("ascii")
        )

    @classmethod
    async def generate(cls, key_size: int = RSA_KEY_SIZE) -> "EphemeralKeyPair":
        """Generate a key pair without blocking the event loop."""
        private_key = await asyncio.to_thread(
            rsa.generate_private_key,
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=key_size,
        )
        return cls(private_key)

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        if self._private_key is None:
            raise RuntimeError("Ephemeral private key has been released")
        return self._private_key

    def release(self) -> None:
        self._private_key = None

    async def __aenter__(self) -> "EphemeralKeyPair":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.release()


async def load_public_key(path: str | Path) -> rsa.RSAPublicKey:
    """
    Load an RSA public key from a PEM file.

    Args:
        path: Absolute path, or a path relative to the working directory

    Raises:
        KeyFileError: If the file is missing or does not hold an RSA public key
    """
    resolved = Path(path).expanduser().resolve()

    try:
        pem = await asyncio.to_thread(resolved.read_bytes)
    except OSError as e:
        raise KeyFileError(str(resolved), e.strerror or str(e)) from e

    try:
        public_key = serialization.load_pem_public_key(pem)
    except ValueError as e:
        raise KeyFileError(str(resolved), "File is not a PEM public key") from e

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise KeyFileError(str(resolved), "Key is not an RSA public key")

    logger.debug("Loaded KYC public key", path=str(resolved), key_size=public_key.key_size)
    return public_key


def frame(data: bytes) -> str:
    """Base64-encode data and wrap it between the envelope marker lines."""
    encoded = base64.b64encode(data).decode("ascii")
    lines = [
        encoded[i : i + ENVELOPE_LINE_WIDTH] for i in range(0, len(encoded), ENVELOPE_LINE_WIDTH)
    ]
    return f"{ENVELOPE_BEGIN}\r\n" + "\n".join(lines) + f"\n{ENVELOPE_END}"


def is_encrypted_message(text: str) -> bool:
    return text.lstrip().startswith(ENVELOPE_BEGIN)


def unframe(message: str) -> bytes:
    """
    Strip the envelope markers and decode the base64 body.

    Raises:
        MalformedEnvelopeError: If the markers are missing or the body is not base64
    """
    text = message.strip()
    if not text.startswith(ENVELOPE_BEGIN):
        raise MalformedEnvelopeError(message, "missing BEGIN marker")

    end = text.find(ENVELOPE_END, len(ENVELOPE_BEGIN))
    if end < 0:
        raise MalformedEnvelopeError(message, "missing END marker")

    body = "".join(text[len(ENVELOPE_BEGIN) : end].split())
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEnvelopeError(message, "body is not valid base64") from e


def encrypt_message(plaintext: str | bytes, public_key: rsa.RSAPublicKey) -> str:
    """
    Encrypt a message for the holder of public_key.

    Returns:
        Framed envelope text
    """
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")

    aes_key = bytearray(os.urandom(AES_KEY_SIZE))
    try:
        iv = os.urandom(GCM_IV_SIZE)
        # AESGCM appends the 16-byte tag to the ciphertext
        sealed = AESGCM(aes_key).encrypt(iv, plaintext, None)
        wrapped_key = public_key.encrypt(bytes(aes_key), _oaep())
    finally:
        _zero(aes_key)

    return frame(wrapped_key + iv + sealed)


def decrypt_message(message: str, private_key: rsa.RSAPrivateKey) -> bytes:
    """
    Decrypt an envelope addressed to private_key.

    Raises:
        MalformedEnvelopeError: If message is not a framed envelope or is too
            short to hold the wrapped key, IV and tag
        IntegrityError: If the key cannot be unwrapped or the GCM tag does
            not verify
    """
    raw = unframe(message)

    key_length = private_key.key_size // 8
    if len(raw) < key_length + GCM_IV_SIZE + GCM_TAG_SIZE:
        raise MalformedEnvelopeError(message, "content too short")

    wrapped_key = raw[:key_length]
    iv = raw[key_length : key_length + GCM_IV_SIZE]
    sealed = raw[key_length + GCM_IV_SIZE :]

    try:
        aes_key = bytearray(private_key.decrypt(wrapped_key, _oaep()))
    except ValueError as e:
        raise IntegrityError("Unable to unwrap message key") from e

    try:
        if len(aes_key) != AES_KEY_SIZE:
            raise IntegrityError("Unwrapped message key has the wrong length")
        return AESGCM(aes_key).decrypt(iv, sealed, None)
    except InvalidTag as e:
        raise IntegrityError() from e
    finally:
        _zero(aes_key)
