"""Static constants for VoiceFit."""

from __future__ import annotations

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_MIME_TYPE = "audio/webm"

# Version 0 is the bare JSON array written by the browser app.
STORE_SCHEMA_VERSION = 1
SESSIONS_FILENAME = "sessions.json"

DATE_FORMAT = "%Y-%m-%d"

MICROPHONE_ERROR_MESSAGE = "Could not access microphone. Please ensure permissions are granted."
PROCESSING_ERROR_MESSAGE = "Failed to process audio. Please try again."

AUDIO_MIME_TYPES = {
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".mp3": "audio/mp3",
    ".m4a": "audio/aac",
    ".aac": "audio/aac",
    ".flac": "audio/flac",
    ".aiff": "audio/aiff",
}

DEFAULT_ANALYTICS = {
    "trend_sessions": 7,
    "top_exercises": 5,
    "recent_days": 7,
}
