"""
Content-provenance (C2PA) configuration.

Illustrations are signed with a C2PA manifest that marks them as
AI-generated and attributes them to the Toys to Stories organization.
"""

import os
from pathlib import Path
from typing import Optional

from ..core.errors import ConfigurationError

PROVENANCE_CONSTANTS = {
    "organization": "Toys to Stories",
    "organization_url": "https://toys-to-stories.vercel.app",
    "software_agent": "Google Gemini AI",
    "software_agent_version": "2.5-flash-image",
    "digital_source_type": "http://cv.iptc.org/newscodes/digitalsourcetype/trainedAlgorithmicMedia",
    "signing_alg": "es256",
    "request_timeout": 30.0,
}


def get_signing_service_url() -> Optional[str]:
    """URL of a remote /api/sign-image endpoint, if illustrations should be signed remotely."""
    return os.getenv("SIGNING_SERVICE_URL") or None


def get_timestamp_authority_url() -> Optional[str]:
    return os.getenv("C2PA_TSA_URL") or None


def is_signing_configured() -> bool:
    return bool(os.getenv("C2PA_CERT_PATH") and os.getenv("C2PA_KEY_PATH"))


def load_signing_credentials() -> tuple[bytes, bytes]:
    """
    Load the PEM certificate chain and private key used for signing.

    Returns:
        Tuple of (certificate chain bytes, private key bytes)

    Raises:
        ConfigurationError: If the paths are not configured or unreadable
    """
    cert_path = os.getenv("C2PA_CERT_PATH")
    key_path = os.getenv("C2PA_KEY_PATH")
    if not cert_path or not key_path:
        raise ConfigurationError(
            "C2PA_CERT_PATH and C2PA_KEY_PATH must be set to sign images."
        )

    try:
        return Path(cert_path).read_bytes(), Path(key_path).read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Could not read C2PA signing credentials: {e}") from e
