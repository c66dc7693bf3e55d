"""Gemini client that turns workout audio into a structured draft session."""

from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any, Dict, Optional

import requests

from voicefit.core.constants import DEFAULT_MODEL, GEMINI_API_BASE
from voicefit.core.models import DraftSession

logger = logging.getLogger(__name__)


class GatewayError(RuntimeError):
    """Raised for any failure to obtain a usable extraction."""


SYSTEM_INSTRUCTION = (
    "You are a multilingual fitness assistant capable of understanding Spanish "
    "and English workout logs perfectly."
)

TASK_INSTRUCTIONS = """
You are a professional fitness coach and translator.

Your task is to extract structured workout data from the provided audio recording.

Instructions for Spanish and multilingual input:
1. Detect language: the audio may be in Spanish, English, or mixed.
2. Transcribe: write the exact words spoken in the 'raw_transcription' field.
   If the user speaks Spanish, the transcription MUST be in Spanish. Do NOT translate it.
3. Translate and normalize: when populating the 'exercises' array, translate
   exercise names to standard English terminology.
   - "Sentadillas" -> "Squats"
   - "Press de banca" -> "Bench Press"
   - "Dominadas" -> "Pull-ups"
   - "Correr" -> "Running"
4. Extract data: identify sets, reps, weight and duration accurately. Handle
   casual speech, e.g. "a couple of sets of ten" means 2 sets of 10 reps.
5. Only fill 'date' when the speaker mentions the day of the workout.

Example input (Spanish): "Hoy hice cinco series de diez sentadillas con 60 kilos."
Example output JSON:
{
  "exercises": [{"name": "Squats", "sets": 5, "reps": 10, "weight": 60}],
  "raw_transcription": "Hoy hice cinco series de diez sentadillas con 60 kilos."
}
""".strip()


RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "date": {
            "type": "STRING",
            "description": "The date of the workout in YYYY-MM-DD format, only if mentioned.",
        },
        "exercises": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {
                        "type": "STRING",
                        "description": (
                            "Standardized name of the exercise in English (e.g., 'Bench Press'). "
                            "Translate from Spanish/other languages if necessary."
                        ),
                    },
                    "sets": {"type": "NUMBER", "description": "Number of sets performed"},
                    "reps": {"type": "NUMBER", "description": "Number of repetitions per set"},
                    "weight": {"type": "NUMBER", "description": "Weight used in kg/lbs if mentioned"},
                    "duration_minutes": {
                        "type": "NUMBER",
                        "description": "Duration in minutes for cardio/timed exercises",
                    },
                },
                "required": ["name"],
            },
        },
        "notes": {
            "type": "STRING",
            "description": "Any additional context regarding intensity, feelings, or specific details.",
        },
        "raw_transcription": {
            "type": "STRING",
            "description": (
                "Verbatim transcription of the audio in the original spoken language "
                "(Spanish/English/etc)."
            ),
        },
    },
    "required": ["exercises", "raw_transcription"],
}

_FENCE_RE = re.compile(r"^```\w*\n?|\n?```$")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wrapping JSON from model output."""
    return _FENCE_RE.sub("", text.strip()).strip()


def build_request(audio: bytes, mime_type: str) -> Dict[str, Any]:
    """Build the generateContent request body."""
    return {
        "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
        "contents": [
            {
                "role": "user",
                "parts": [
                    {
                        "inline_data": {
                            "mime_type": mime_type,
                            "data": base64.b64encode(audio).decode("ascii"),
                        }
                    },
                    {"text": TASK_INSTRUCTIONS},
                ],
            }
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }


def response_text(payload: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    if not isinstance(payload, dict):
        return ""
    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))


def parse_draft(text: str) -> DraftSession:
    """Decode and validate the model's JSON answer."""
    if not text or not text.strip():
        raise GatewayError("No response from model")
    try:
        payload = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise GatewayError(f"Model returned invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise GatewayError("Model returned JSON that is not an object")
    try:
        return DraftSession.from_dict(payload)
    except ValueError as exc:
        raise GatewayError(f"Model response violates the extraction schema: {exc}") from exc


class InferenceGateway:
    """Marshals audio to Gemini and validates the structured answer."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = GEMINI_API_BASE,
        timeout_seconds: float = 60,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key or "",
            "Content-Type": "application/json",
        }

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def transcribe_and_extract(self, audio: bytes, mime_type: str) -> DraftSession:
        """Send one recording and return the draft session; no retries."""
        if not self.api_key:
            raise GatewayError("API key not found")
        if not audio:
            raise GatewayError("No audio captured")

        logger.debug("Sending %d bytes of %s to %s", len(audio), mime_type, self.model)
        try:
            response = requests.post(
                self.url,
                headers=self._headers,
                json=build_request(audio, mime_type),
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise GatewayError(f"Gemini request failed: {exc}") from exc

        draft = parse_draft(response_text(payload))
        logger.debug("Extracted %d exercises", len(draft.exercises))
        return draft
