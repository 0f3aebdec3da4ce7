"""
Patient consent API.

Reads and updates the FHIR Consent resource that controls whether a
patient's records can be accessed by other health facilities through the
platform.
"""

import json
from typing import Any, Literal

from satusehat.audit import AuditEvent, audit_log
from satusehat.config.endpoints import ApiFamily
from satusehat.config.logging import get_logger
from satusehat.errors import SatuSehatError
from satusehat.services.dispatcher import RequestDispatcher, RequestSpec
from satusehat.services.http import APIResponse

logger = get_logger(__name__)

ConsentAction = Literal["OPTIN", "OPTOUT"]


def operation_outcome(text: str) -> dict[str, Any]:
    """Build an OperationOutcome describing a client-side failure."""
    return {
        "resourceType": "OperationOutcome",
        "issue": [
            {
                "code": "exception",
                "severity": "error",
                "details": {"text": text or "unknown error"},
            }
        ],
    }


class Consent:
    """Consent resource operations."""

    def __init__(self, dispatcher: RequestDispatcher):
        self._dispatcher = dispatcher

    async def get(self, patient_id: str) -> dict[str, Any]:
        """
        Get the consent of a patient.

        Args:
            patient_id: IHS patient identifier

        Returns:
            FHIR Consent on success, otherwise an OperationOutcome (including
            for 5xx responses and transport failures)
        """
        result = await self._call(
            RequestSpec(
                api=ApiFamily.CONSENT,
                path="/Consent",
                params=[("patient_id", patient_id)],
            )
        )
        audit_log(
            AuditEvent.CONSENT_READ,
            patient_id=patient_id,
            success=result.get("resourceType") == "Consent",
        )
        return result

    async def update(
        self,
        patient_id: str,
        action: ConsentAction,
        agent: str,
    ) -> dict[str, Any]:
        """
        Record a patient's consent decision.

        OPTIN allows other facilities to access the patient's records through
        the platform for care and referral; OPTOUT refuses it. OPTOUT does not
        stop the facility from submitting records.

        Args:
            patient_id: IHS patient identifier
            action: OPTIN or OPTOUT
            agent: Name of the staff member requesting consent

        Returns:
            FHIR Consent on success, otherwise an OperationOutcome
        """
        body = json.dumps({"patient_id": patient_id, "action": action, "agent": agent})
        result = await self._call(
            RequestSpec(
                api=ApiFamily.CONSENT,
                path="/Consent",
                method="POST",
                headers={"Content-Type": "application/json"},
                body=body,
            )
        )
        audit_log(
            AuditEvent.CONSENT_UPDATE,
            patient_id=patient_id,
            success=result.get("resourceType") == "Consent",
            details={"action": action},
        )
        return result

    async def _call(self, spec: RequestSpec) -> dict[str, Any]:
        try:
            response = await self._dispatcher.request(spec)
            return self._parse(response)
        except (SatuSehatError, ValueError) as e:
            logger.warning("Consent request failed", path=spec.path, error=str(e))
            return operation_outcome(str(e))

    @staticmethod
    def _parse(response: APIResponse) -> dict[str, Any]:
        if response.status >= 500:
            raise ValueError(response.text())
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected consent response: {response.text()}")
        return payload
