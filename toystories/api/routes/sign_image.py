"""C2PA provenance signing endpoint."""

import asyncio
import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from toystories.core.errors import ConfigurationError, SigningError
from toystories.core.modules.provenance_signer import LocalProvenanceSigner
from toystories.core.types import ImagePayload

from ..models.requests import SignImageRequest
from ..models.responses import SignImageResponse

logger = logging.getLogger(__name__)

router = APIRouter()

SIGNING_ERROR = "Failed to sign image with C2PA credentials"


def get_signer() -> LocalProvenanceSigner:
    """Build a signer from the configured certificate and key."""
    return LocalProvenanceSigner()


@router.post(
    "/sign-image",
    response_model=SignImageResponse,
    summary="Sign an image",
    description="Embed a C2PA manifest marking the image as AI-generated.",
)
async def sign_image(request: SignImageRequest):
    """Return a signed copy of a base64 image."""
    if not request.imageBase64 or not request.mimeType:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing imageBase64 or mimeType"},
        )

    try:
        image = ImagePayload.from_base64(request.imageBase64, request.mimeType)
        signer = get_signer()
        signed = await asyncio.to_thread(
            signer.sign_bytes, image.data, image.mime_type, request.pageNumber
        )
    except (ValueError, ConfigurationError, SigningError) as e:
        logger.error(f"C2PA signing error: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": SIGNING_ERROR, "details": str(e)},
        )

    signed_image = ImagePayload(mime_type=request.mimeType, data=signed)
    return SignImageResponse(signedImageBase64=signed_image.to_base64(), mimeType=request.mimeType)
