"""Text-to-speech endpoint proxying ElevenLabs."""

import logging
import os

import httpx
from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from toystories.core.errors import SpeechServiceError

from ..config import (
    ELEVENLABS_API_URL,
    ELEVENLABS_MODEL_ID,
    ELEVENLABS_VOICE_ID,
    ELEVENLABS_VOICE_SETTINGS,
    TTS_CACHE_CONTROL,
    TTS_REQUEST_TIMEOUT,
)
from ..models.requests import TTSRequest

logger = logging.getLogger(__name__)

router = APIRouter()

# ElevenLabs credentials
ELEVENLABS_API_KEY = os.getenv("ELEVENLABS_API_KEY", "")


def strip_pronunciation_hint(text: str) -> str:
    """Drop a parenthetical pronunciation hint: "勇敢 (yǒng gǎn)" → "勇敢"."""
    return text.split(" (")[0].strip()


class ElevenLabsTTSProxy:
    """Synthesizes speech with the multilingual ElevenLabs model."""

    def __init__(self, api_key: str, voice_id: str = ELEVENLABS_VOICE_ID):
        self.api_key = api_key
        self.voice_id = voice_id

    async def synthesize(self, text: str) -> bytes:
        """
        Convert text to MP3 audio.

        Raises:
            SpeechServiceError: With the HTTP status to report to the client
        """
        try:
            async with httpx.AsyncClient(timeout=TTS_REQUEST_TIMEOUT) as client:
                response = await client.post(
                    f"{ELEVENLABS_API_URL}/{self.voice_id}",
                    headers={
                        "Accept": "audio/mpeg",
                        "Content-Type": "application/json",
                        "xi-api-key": self.api_key,
                    },
                    json={
                        "text": text,
                        "model_id": ELEVENLABS_MODEL_ID,
                        "voice_settings": ELEVENLABS_VOICE_SETTINGS,
                    },
                )
        except httpx.RequestError as e:
            raise SpeechServiceError("Failed to generate speech", details=str(e)) from e

        if response.status_code == 200:
            return response.content

        logger.error(f"ElevenLabs API error: {response.status_code} {response.text[:200]}")
        if response.status_code == 401:
            raise SpeechServiceError("Invalid API key", status_code=401)
        if response.status_code == 429:
            raise SpeechServiceError("Rate limit or quota exceeded", status_code=429)
        raise SpeechServiceError(
            "ElevenLabs API error",
            status_code=response.status_code,
            details=response.text,
        )


def _error_response(error: SpeechServiceError) -> JSONResponse:
    content = {"error": str(error)}
    if error.details is not None:
        content["details"] = error.details
    content["fallback"] = error.fallback
    return JSONResponse(status_code=error.status_code, content=content)


@router.post(
    "/tts",
    summary="Text to speech",
    description="Speak a story page or vocabulary word. Error responses carry `fallback: true` "
    "so the client can switch to its on-device speech engine.",
    responses={200: {"content": {"audio/mpeg": {}}}},
)
async def text_to_speech(request: TTSRequest):
    """Return MP3 audio for the given text."""
    if not ELEVENLABS_API_KEY:
        logger.error("ELEVENLABS_API_KEY not configured")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "ElevenLabs API key not configured", "fallback": True},
        )

    if not request.text:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing text parameter"},
        )

    text = strip_pronunciation_hint(request.text)
    proxy = ElevenLabsTTSProxy(ELEVENLABS_API_KEY)

    try:
        audio = await proxy.synthesize(text)
    except SpeechServiceError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception(f"TTS error: {type(e).__name__}: {e}")
        return _error_response(SpeechServiceError("Failed to generate speech", details=str(e)))

    logger.info(f"Synthesized {len(audio)} bytes of speech for: {text[:50]}")
    return Response(
        content=audio,
        media_type="audio/mpeg",
        headers={"Cache-Control": TTS_CACHE_CONTROL},
    )
