"""
KYC (identity verification) API.

The validation URL endpoint exchanges encrypted messages: the request is
encrypted for the server's public key (read from the configured PEM file)
and carries a per-call ephemeral public key, which the server uses to
encrypt its reply.
"""

import json
from typing import Any

from satusehat.audit import AuditEvent, audit_log
from satusehat.config.endpoints import ApiFamily
from satusehat.config.logging import get_logger
from satusehat.config.settings import ConfigResolver
from satusehat.crypto.envelope import (
    EphemeralKeyPair,
    decrypt_message,
    encrypt_message,
    load_public_key,
)
from satusehat.errors import MalformedEnvelopeError
from satusehat.models.kyc import KycResult
from satusehat.services.dispatcher import RequestDispatcher, RequestSpec
from satusehat.services.http import APIResponse

logger = get_logger(__name__)


def error_data(body: str) -> dict[str, Any]:
    """
    Describe a KYC error response.

    The raw body is always kept; a JSON body is also included as ``detail``
    and its error/message field, when present, becomes ``error``.
    """
    data: dict[str, Any] = {"error": body or "empty response", "raw": body}
    try:
        parsed = json.loads(body)
    except ValueError:
        return data

    if isinstance(parsed, dict):
        message = parsed.get("error") or parsed.get("message")
        if isinstance(message, str) and message:
            data["error"] = message
    data["detail"] = parsed
    return data


class KYC:
    """Identity verification operations."""

    def __init__(self, dispatcher: RequestDispatcher, resolver: ConfigResolver):
        self._dispatcher = dispatcher
        self._resolver = resolver

    async def generate_validation_url(self, name: str, nik: str) -> KycResult:
        """
        Generate a validation URL for an agent.

        Args:
            name: Agent (staff) name
            nik: Agent national identity number

        Returns:
            KycResult whose data holds agent_name, agent_nik, token and url on
            success, or an ``error`` key when the server returned an error

        Raises:
            KeyFileError: If the server public key cannot be loaded
            IntegrityError: If the encrypted reply fails authentication
            AuthError: If no access token can be obtained
            TransportError: On network failure
        """
        config = await self._resolver.resolve()
        server_key = await load_public_key(config.kyc_pem_file)

        async with await EphemeralKeyPair.generate() as key_pair:
            payload = json.dumps(
                {
                    "agent_name": name,
                    "agent_nik": nik,
                    "public_key": key_pair.public_key_pem,
                }
            )
            response = await self._dispatcher.request(
                RequestSpec(
                    api=ApiFamily.KYC,
                    path="/generate-url",
                    method="POST",
                    headers={"Content-Type": "text/plain"},
                    body=encrypt_message(payload, server_key),
                )
            )
            result = self._decrypt_response(response, key_pair)

        audit_log(
            AuditEvent.KYC_VALIDATION_URL,
            mode=config.mode.value,
            nik=nik,
            status_code=response.status,
            success=result.success,
            error=result.error,
        )
        return result

    async def generate_verification_code(self, nik: str, name: str) -> KycResult:
        """
        Generate a challenge code for a patient to verify their identity.

        Returns:
            KycResult whose data holds nik, name, ihs_number, challenge_code,
            created_timestamp and expired_timestamp on success
        """
        body = json.dumps(
            {
                "metadata": {"method": "request_per_nik"},
                "data": {"nik": nik, "name": name},
            }
        )
        response = await self._dispatcher.request(
            RequestSpec(
                api=ApiFamily.KYC,
                path="/challenge-code",
                method="POST",
                headers={"Content-Type": "application/json"},
                body=body,
            )
        )

        text = response.text()
        result = KycResult(success=False, status_code=response.status, data=error_data(text))
        if response.ok:
            try:
                payload = json.loads(text)
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                data = payload.get("data", payload)
                if isinstance(data, dict):
                    result = KycResult(success=True, status_code=response.status, data=data)

        audit_log(
            AuditEvent.KYC_VERIFICATION_CODE,
            nik=nik,
            status_code=response.status,
            success=result.success,
            error=result.error,
        )
        return result

    @staticmethod
    def _decrypt_response(response: APIResponse, key_pair: EphemeralKeyPair) -> KycResult:
        text = response.text()
        if not response.ok:
            return KycResult(success=False, status_code=response.status, data=error_data(text))

        try:
            plaintext = decrypt_message(text, key_pair.private_key)
        except MalformedEnvelopeError as e:
            logger.warning(
                "KYC response is not an encrypted message",
                status_code=response.status,
                reason=e.details.get("reason"),
            )
            return KycResult(success=False, status_code=response.status, data=error_data(e.body))

        try:
            data = json.loads(plaintext)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return KycResult(
                success=False,
                status_code=response.status,
                data={"error": "Decrypted response is not a JSON object"},
            )
        return KycResult(success=True, status_code=response.status, data=data)
