"""API configuration constants.

Single source of truth for settings used across the API layer.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Logging
LOG_JSON = os.getenv("TOYSTORIES_LOG_JSON", "true").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("TOYSTORIES_LOG_LEVEL", "INFO").upper()

# CORS - comma-separated origins
CORS_ORIGINS = [o.strip() for o in os.getenv("TOYSTORIES_CORS_ORIGINS", "*").split(",") if o.strip()]

# Session registry settings
MAX_SESSIONS = int(os.getenv("TOYSTORIES_MAX_SESSIONS", "100"))

# ElevenLabs text-to-speech
ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1/text-to-speech"
ELEVENLABS_VOICE_ID = os.getenv("ELEVENLABS_VOICE_ID", "EXAVITQu4vr4xnSDxMaL")
ELEVENLABS_MODEL_ID = "eleven_multilingual_v2"  # Auto-detects language from the text
ELEVENLABS_VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}
TTS_REQUEST_TIMEOUT = float(os.getenv("TOYSTORIES_TTS_TIMEOUT", "30"))
TTS_CACHE_CONTROL = "public, max-age=86400"  # 24 hours
