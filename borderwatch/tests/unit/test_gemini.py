"""
Unit tests for the Gemini client.

The wire format is checked against an ``httpx.MockTransport``; no network.
"""

import json

import httpx
import pytest

from borderwatch.domain.models import (
    DetectionKind,
    ObjectDetection,
    PlateRecognition,
    Severity,
    ThreatAssessment,
)
from borderwatch.infrastructure.ai import GeminiInvoker, InvocationError

IMAGE = "aW1hZ2U="
BASE_URL = "https://gemini.test/v1beta"


def reply(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"candidates": [{"content": {"parts": [{"text": text}]}}]},
    )


def make_invoker(handler, api_key: str | None = "test-key") -> GeminiInvoker:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiInvoker(api_key=api_key, model="gemini-test", base_url=BASE_URL, client=client)


class TestRequestFormat:
    """Tests for the outgoing request."""

    @pytest.mark.asyncio
    async def test_generate_content_request(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return reply('{"plateNumber": "AKH123B"}')

        invoker = make_invoker(handler)
        await invoker.invoke(IMAGE, DetectionKind.PLATE)

        request = captured[0]
        body = json.loads(request.content)
        parts = body["contents"][0]["parts"]

        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/models/gemini-test:generateContent"
        assert request.headers["x-goog-api-key"] == "test-key"
        assert "plate" in parts[0]["text"].lower()
        assert parts[1] == {"inlineData": {"mimeType": "image/jpeg", "data": IMAGE}}
        assert body["generationConfig"] == {"responseMimeType": "application/json"}

    @pytest.mark.asyncio
    async def test_conditions_in_object_prompt(self):
        captured: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return reply('{"objectsDetected": [], "threatLevel": "Low"}')

        invoker = make_invoker(handler)
        await invoker.invoke(IMAGE, DetectionKind.OBJECTS, environmental_conditions="Heavy fog")

        assert "Heavy fog" in captured[0]["contents"][0]["parts"][0]["text"]

    @pytest.mark.asyncio
    async def test_plain_text_request_has_no_json_config(self):
        captured: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return reply(" akh123b \n")

        invoker = make_invoker(handler)
        text = await invoker.extract_plate_text(IMAGE)

        assert text == "AKH123B"
        assert "generationConfig" not in captured[0]


class TestReplyParsing:
    """Tests for mapping replies to typed results."""

    @pytest.mark.asyncio
    async def test_plate_reply(self):
        payload = {
            "plateNumber": "AKH 123B",
            "vehicleDetails": "White Toyota Hilux",
            "countryOfOrigin": "Nigeria",
            "isOfInterest": True,
            "reasonForInterest": "Reported stolen",
            "confidenceScore": 0.93,
        }
        invoker = make_invoker(lambda request: reply(json.dumps(payload)))

        result = await invoker.invoke(IMAGE, DetectionKind.PLATE)

        assert isinstance(result, PlateRecognition)
        assert result.plate_number == "AKH 123B"
        assert result.is_of_interest is True
        assert result.confidence_score == pytest.approx(0.93)

    @pytest.mark.asyncio
    async def test_plate_defaults(self):
        invoker = make_invoker(lambda request: reply('{"plateNumber": "X1"}'))

        result = await invoker.invoke(IMAGE, DetectionKind.PLATE)

        assert result.is_of_interest is False
        assert result.confidence_score == pytest.approx(0.7)
        assert result.vehicle_details is None

    @pytest.mark.asyncio
    async def test_code_fenced_reply(self):
        text = '```json\n{"objectsDetected": ["backpack"], "threatLevel": "medium"}\n```'
        invoker = make_invoker(lambda request: reply(text))

        result = await invoker.invoke(IMAGE, DetectionKind.OBJECTS)

        assert isinstance(result, ObjectDetection)
        assert result.objects_detected == ["backpack"]
        assert result.threat_level == Severity.MEDIUM
        assert result.confidence_score == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_object_labels_as_string(self):
        text = '{"objectsDetected": "rifle, ammunition", "threatLevel": "Unheard-of"}'
        invoker = make_invoker(lambda request: reply(text))

        result = await invoker.invoke(IMAGE, DetectionKind.OBJECTS)

        assert result.objects_detected == ["rifle", "ammunition"]
        assert result.threat_level == Severity.LOW

    @pytest.mark.asyncio
    async def test_percentage_confidence(self):
        text = '{"isThreat": true, "name": "John Doe", "confidenceScore": 85}'
        invoker = make_invoker(lambda request: reply(text))

        result = await invoker.invoke(IMAGE, DetectionKind.THREAT)

        assert isinstance(result, ThreatAssessment)
        assert result.confidence_score == pytest.approx(0.85)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("is_threat,expected", [(True, 0.75), (False, 0.25)])
    async def test_threat_confidence_tiers(self, is_threat: bool, expected: float):
        text = json.dumps({"isThreat": is_threat})
        invoker = make_invoker(lambda request: reply(text))

        result = await invoker.invoke(IMAGE, DetectionKind.THREAT)

        assert result.confidence_score == pytest.approx(expected)
        assert result.name == "Unknown"

    @pytest.mark.asyncio
    async def test_single_element_list_unwrapped(self):
        invoker = make_invoker(lambda request: reply('[{"isThreat": false, "name": "Jane"}]'))

        result = await invoker.invoke(IMAGE, DetectionKind.THREAT)

        assert result.is_threat is False
        assert result.name == "Jane"


class TestInvocationErrors:
    """Every failure surfaces as InvocationError."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected without a key")

        invoker = make_invoker(handler, api_key=None)

        assert invoker.configured is False
        with pytest.raises(InvocationError):
            await invoker.invoke(IMAGE, DetectionKind.PLATE)

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        invoker = make_invoker(lambda request: httpx.Response(500, text="internal"))

        with pytest.raises(InvocationError, match="500"):
            await invoker.invoke(IMAGE, DetectionKind.THREAT)

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        invoker = make_invoker(handler)

        with pytest.raises(InvocationError):
            await invoker.invoke(IMAGE, DetectionKind.THREAT)

    @pytest.mark.asyncio
    async def test_non_json_reply_text(self):
        invoker = make_invoker(lambda request: reply("I cannot help with that."))

        with pytest.raises(InvocationError):
            await invoker.invoke(IMAGE, DetectionKind.PLATE)

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        invoker = make_invoker(lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(InvocationError):
            await invoker.invoke(IMAGE, DetectionKind.PLATE)

    @pytest.mark.asyncio
    async def test_wrong_shape(self):
        invoker = make_invoker(lambda request: reply("[1, 2, 3]"))

        with pytest.raises(InvocationError):
            await invoker.invoke(IMAGE, DetectionKind.OBJECTS)

    @pytest.mark.asyncio
    async def test_invalid_field_type(self):
        invoker = make_invoker(lambda request: reply('{"isThreat": {"nested": 1}}'))

        with pytest.raises(InvocationError):
            await invoker.invoke(IMAGE, DetectionKind.THREAT)

    @pytest.mark.asyncio
    async def test_empty_plain_text(self):
        invoker = make_invoker(lambda request: reply("   "))

        assert await invoker.extract_plate_text(IMAGE) is None
