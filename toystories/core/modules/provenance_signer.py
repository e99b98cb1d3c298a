"""
Provenance signing for generated illustrations.

Embeds a C2PA manifest asserting that an image was created by a trained
algorithm, with software-agent and organization attribution. Two signers
share one interface:

- LocalProvenanceSigner signs in-process with c2pa-python (used by the
  /api/sign-image endpoint and when credentials are available locally)
- HttpProvenanceSigner posts the image to a remote /api/sign-image endpoint

Signing failures raise SigningError; callers keep the unsigned image.
"""

import asyncio
import base64
import binascii
import json
import logging
from io import BytesIO
from typing import Optional

import c2pa
import httpx

from toystories.config.provenance import (
    PROVENANCE_CONSTANTS,
    get_signing_service_url,
    get_timestamp_authority_url,
    is_signing_configured,
    load_signing_credentials,
)
from ..errors import ConfigurationError, SigningError
from ..types import ImagePayload

logger = logging.getLogger(__name__)


def build_manifest(page_number: Optional[int] = None) -> dict:
    """Build the C2PA manifest definition for one illustration."""
    creative_work = {
        "@context": "https://schema.org",
        "@type": "CreativeWork",
        "author": [
            {
                "@type": "Organization",
                "name": PROVENANCE_CONSTANTS["organization"],
                "url": PROVENANCE_CONSTANTS["organization_url"],
            }
        ],
    }
    if page_number is not None:
        creative_work["name"] = f"Story Illustration - Page {page_number}"

    return {
        "claim_generator_info": [
            {"name": PROVENANCE_CONSTANTS["organization"], "version": "0.1.0"}
        ],
        "title": creative_work.get("name", "Story Illustration"),
        "assertions": [
            {
                "label": "c2pa.actions",
                "data": {
                    "actions": [
                        {
                            "action": "c2pa.created",
                            "digitalSourceType": PROVENANCE_CONSTANTS["digital_source_type"],
                            "softwareAgent": {
                                "name": PROVENANCE_CONSTANTS["software_agent"],
                                "version": PROVENANCE_CONSTANTS["software_agent_version"],
                            },
                        }
                    ]
                },
            },
            {
                "label": "stds.schema-org.CreativeWork",
                "data": creative_work,
            },
        ],
    }


class ProvenanceSigner:
    """Interface: return a signed copy of an image."""

    async def sign(self, image: ImagePayload, page_number: Optional[int] = None) -> ImagePayload:
        raise NotImplementedError


class LocalProvenanceSigner(ProvenanceSigner):
    """Sign images in-process with c2pa-python."""

    def __init__(
        self,
        certificate: Optional[bytes] = None,
        private_key: Optional[bytes] = None,
        ta_url: Optional[str] = None,
    ):
        if certificate is None or private_key is None:
            certificate, private_key = load_signing_credentials()
        self.certificate = certificate
        self.private_key = private_key
        self.ta_url = ta_url or get_timestamp_authority_url()

    def _signer_info(self) -> c2pa.C2paSignerInfo:
        return c2pa.C2paSignerInfo(
            alg=PROVENANCE_CONSTANTS["signing_alg"].encode(),
            sign_cert=self.certificate,
            private_key=self.private_key,
            ta_url=self.ta_url.encode() if self.ta_url else None,
        )

    def sign_bytes(self, data: bytes, mime_type: str, page_number: Optional[int] = None) -> bytes:
        """Synchronously embed the manifest and return the signed image bytes."""
        manifest = build_manifest(page_number)
        source = BytesIO(data)
        dest = BytesIO()
        try:
            with c2pa.Signer.from_info(self._signer_info()) as signer:
                with c2pa.Builder(json.dumps(manifest)) as builder:
                    builder.sign(signer, mime_type, source, dest)
        except Exception as e:
            raise SigningError(f"Failed to sign image with C2PA credentials: {e}") from e

        signed = dest.getvalue()
        if not signed:
            raise SigningError("Failed to generate signed image")
        return signed

    async def sign(self, image: ImagePayload, page_number: Optional[int] = None) -> ImagePayload:
        signed = await asyncio.to_thread(self.sign_bytes, image.data, image.mime_type, page_number)
        return ImagePayload(mime_type=image.mime_type, data=signed)


class HttpProvenanceSigner(ProvenanceSigner):
    """Sign images through a remote /api/sign-image endpoint."""

    def __init__(self, url: str, timeout: Optional[float] = None):
        self.url = url
        self.timeout = timeout or PROVENANCE_CONSTANTS["request_timeout"]

    async def sign(self, image: ImagePayload, page_number: Optional[int] = None) -> ImagePayload:
        body = {"imageBase64": image.to_base64(), "mimeType": image.mime_type}
        if page_number is not None:
            body["pageNumber"] = page_number

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=body)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise SigningError(f"Failed to reach signing service: {e}") from e

        if response.status_code != 200:
            raise SigningError(f"Signing service returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise SigningError(f"Signing service returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SigningError(f"Signing service returned {type(data).__name__}, expected an object")
        if not data.get("success") or not data.get("signedImageBase64"):
            raise SigningError("Signing service did not return a signed image")

        try:
            signed = base64.b64decode(data["signedImageBase64"], validate=True)
        except (binascii.Error, ValueError) as e:
            raise SigningError(f"Signing service returned invalid base64: {e}") from e

        return ImagePayload(mime_type=data.get("mimeType") or image.mime_type, data=signed)


def get_default_signer() -> Optional[ProvenanceSigner]:
    """Pick a signer from the environment, or None when signing is not set up."""
    url = get_signing_service_url()
    if url:
        return HttpProvenanceSigner(url)
    if is_signing_configured():
        try:
            return LocalProvenanceSigner()
        except ConfigurationError as e:
            logger.warning(f"Provenance signing disabled: {e}")
    return None
