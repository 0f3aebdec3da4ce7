"""
SatuSehat host and API family endpoints.

Each environment mode has its own host; every API family lives under a fixed
path prefix on that host.
"""

from dataclasses import dataclass
from enum import Enum


class Mode(str, Enum):
    """Environment the client talks to."""

    SANDBOX = "sandbox"
    PRODUCTION = "production"


class ApiFamily(str, Enum):
    """Backend services exposed by the platform."""

    AUTH = "auth"
    FHIR = "fhir"
    CONSENT = "consent"
    KYC = "kyc"
    KFA = "kfa"
    KFA2 = "kfa2"
    KFA3 = "kfa3"


# Escape hatch for endpoints without a dedicated family; resolves to the host root
BASE = "base"


@dataclass(frozen=True)
class FamilyPaths:
    """Path prefix of each API family on the mode host."""

    AUTH: str = "/oauth2/v1"
    FHIR: str = "/fhir-r4/v1"
    CONSENT: str = "/consent/v1"
    KYC: str = "/kyc/v1"
    KFA: str = "/kfa"
    KFA2: str = "/kfa-v2"
    KFA3: str = "/kfa-v3"


FAMILY_PATHS = FamilyPaths()

BASE_URLS: dict[Mode, str] = {
    Mode.SANDBOX: "https://api-satusehat-stg.dto.kemkes.go.id",
    Mode.PRODUCTION: "https://api-satusehat.kemkes.go.id",
}

ENDPOINT_URLS: dict[Mode, dict[ApiFamily, str]] = {
    mode: {family: url + getattr(FAMILY_PATHS, family.name) for family in ApiFamily}
    for mode, url in BASE_URLS.items()
}


def get_base_url(mode: Mode) -> str:
    """Get the host root URL for a mode."""
    return BASE_URLS[Mode(mode)]


def get_endpoint_url(mode: Mode, api: ApiFamily | str) -> str:
    """
    Get the base URL of an API family.

    Args:
        mode: Environment mode
        api: API family, or "base" for the host root

    Returns:
        Base URL without trailing slash

    Raises:
        ValueError: If api is not a known family
    """
    if api == BASE:
        return get_base_url(mode)
    return ENDPOINT_URLS[Mode(mode)][ApiFamily(api)]
