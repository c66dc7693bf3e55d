from __future__ import annotations

import base64
import json
from typing import Any, Dict, List

import pytest
import requests

from voicefit.core.gateway import (
    RESPONSE_SCHEMA,
    GatewayError,
    InferenceGateway,
    build_request,
    parse_draft,
    response_text,
    strip_code_fences,
)
from voicefit.core.models import Exercise


class _MockResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError("request failed", response=self)

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _gateway(api_key: str | None = "secret") -> InferenceGateway:
    return InferenceGateway(api_key=api_key, model="gemini-2.5-flash", base_url="https://example.test/v1beta/")


def test_successful_extraction_marshals_request(monkeypatch: pytest.MonkeyPatch, gemini_reply) -> None:
    calls: List[Dict[str, Any]] = []

    def fake_post(url, headers=None, json=None, timeout=None):  # type: ignore[no-untyped-def]
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        return _MockResponse(
            payload=gemini_reply(
                {
                    "exercises": [{"name": "Bench Press", "sets": 5, "reps": 10}],
                    "raw_transcription": "cinco series de diez press de banca",
                }
            )
        )

    monkeypatch.setattr("voicefit.core.gateway.requests.post", fake_post)

    draft = _gateway().transcribe_and_extract(b"RIFFdata", "audio/wav")

    assert draft.exercises == (Exercise(name="Bench Press", sets=5, reps=10),)
    assert draft.raw_transcription == "cinco series de diez press de banca"
    assert draft.date is None

    (call,) = calls
    assert call["url"] == "https://example.test/v1beta/models/gemini-2.5-flash:generateContent"
    assert call["headers"]["x-goog-api-key"] == "secret"
    assert call["timeout"] == 60
    audio_part = call["json"]["contents"][0]["parts"][0]["inline_data"]
    assert audio_part == {"mime_type": "audio/wav", "data": base64.b64encode(b"RIFFdata").decode()}
    assert call["json"]["generationConfig"]["responseMimeType"] == "application/json"
    assert call["json"]["generationConfig"]["responseSchema"] == RESPONSE_SCHEMA


def test_missing_api_key_fails_before_network(monkeypatch: pytest.MonkeyPatch) -> None:
    def fail_post(*args, **kwargs):  # type: ignore[no-untyped-def]
        raise AssertionError("network should not be touched")

    monkeypatch.setattr("voicefit.core.gateway.requests.post", fail_post)
    with pytest.raises(GatewayError, match="API key"):
        _gateway(api_key=None).transcribe_and_extract(b"audio", "audio/wav")


def test_network_error_becomes_gateway_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(*args, **kwargs):  # type: ignore[no-untyped-def]
        raise requests.Timeout("read timed out")

    monkeypatch.setattr("voicefit.core.gateway.requests.post", fake_post)
    with pytest.raises(GatewayError, match="read timed out"):
        _gateway().transcribe_and_extract(b"audio", "audio/wav")


def test_http_error_is_not_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    attempts = {"count": 0}

    def fake_post(*args, **kwargs):  # type: ignore[no-untyped-def]
        attempts["count"] += 1
        return _MockResponse(status_code=429, payload={"error": "quota"})

    monkeypatch.setattr("voicefit.core.gateway.requests.post", fake_post)
    with pytest.raises(GatewayError):
        _gateway().transcribe_and_extract(b"audio", "audio/wav")
    assert attempts["count"] == 1


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": [{"text": ""}]}}]},
        {"candidates": [{"finishReason": "SAFETY"}]},
    ],
)
def test_empty_response_fails(monkeypatch: pytest.MonkeyPatch, payload: Dict[str, Any]) -> None:
    monkeypatch.setattr(
        "voicefit.core.gateway.requests.post",
        lambda *args, **kwargs: _MockResponse(payload=payload),
    )
    with pytest.raises(GatewayError, match="No response"):
        _gateway().transcribe_and_extract(b"audio", "audio/wav")


def test_response_body_not_json_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "voicefit.core.gateway.requests.post",
        lambda *args, **kwargs: _MockResponse(payload=ValueError("Expecting value")),
    )
    with pytest.raises(GatewayError, match="request failed"):
        _gateway().transcribe_and_extract(b"audio", "audio/wav")


@pytest.mark.parametrize(
    ("text", "match"),
    [
        ("not json at all", "invalid JSON"),
        ("[1, 2]", "not an object"),
        (json.dumps({"exercises": [{"name": "Squats"}]}), "raw_transcription"),
        (json.dumps({"raw_transcription": 42, "exercises": []}), "raw_transcription"),
        (json.dumps({"raw_transcription": "x", "exercises": [{"sets": 3}]}), "name"),
        (json.dumps({"raw_transcription": "x", "exercises": "squats"}), "list"),
    ],
)
def test_parse_draft_rejects_contract_violations(text: str, match: str) -> None:
    with pytest.raises(GatewayError, match=match):
        parse_draft(text)


def test_parse_draft_accepts_fenced_json() -> None:
    text = '```json\n{"raw_transcription": "ran twenty minutes", "exercises": [{"name": "Running", "duration_minutes": 20}], "date": "2026-10-01"}\n```'
    draft = parse_draft(text)
    assert draft.date == "2026-10-01"
    assert draft.exercises[0].duration_minutes == 20.0


def test_strip_code_fences_leaves_plain_text() -> None:
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'


def test_response_text_joins_parts() -> None:
    payload = {"candidates": [{"content": {"parts": [{"text": '{"raw_'}, {"text": 'transcription": ""}'}]}}]}
    assert response_text(payload) == '{"raw_transcription": ""}'
    assert response_text(["unexpected"]) == ""


def test_build_request_requires_transcription_in_schema() -> None:
    body = build_request(b"x", "audio/webm")
    assert set(body["generationConfig"]["responseSchema"]["required"]) == {"exercises", "raw_transcription"}
    instructions = body["contents"][0]["parts"][1]["text"]
    assert "Sentadillas" in instructions
    assert "raw_transcription" in instructions
    assert "systemInstruction" in body
