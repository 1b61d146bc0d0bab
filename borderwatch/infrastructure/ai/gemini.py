"""
Detection invoker backed by the Gemini ``generateContent`` endpoint.

One POST per call: no retry, no backoff. Any transport, status or parse
problem surfaces as ``InvocationError`` and the caller decides what the
operator sees.
"""

import json
import re
from typing import Any

import httpx
from pydantic import ValidationError

from borderwatch.core.config import Settings
from borderwatch.core.logging import get_logger
from borderwatch.domain.models import DetectionKind, DetectionResult
from borderwatch.infrastructure.ai.prompts import (
    PLATE_RECOGNITION_PROMPT,
    PLATE_TEXT_PROMPT,
    THREAT_IDENTIFICATION_PROMPT,
    object_detection_prompt,
)
from borderwatch.infrastructure.ai.schemas import (
    ObjectDetectionReply,
    PlateRecognitionReply,
    ThreatAssessmentReply,
)

logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

_REPLY_MODELS = {
    DetectionKind.PLATE: PlateRecognitionReply,
    DetectionKind.OBJECTS: ObjectDetectionReply,
    DetectionKind.THREAT: ThreatAssessmentReply,
}


class InvocationError(Exception):
    """Raised when the image-understanding call fails or returns garbage."""

    pass


class GeminiInvoker:
    """
    Sends one base64 JPEG plus an instruction and parses the reply.

    Example:
        invoker = GeminiInvoker.from_settings(get_settings())
        result = await invoker.invoke(image_b64, DetectionKind.PLATE)
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the invoker.

        Args:
            api_key: Gemini API key. Calls fail until one is provided.
            model: Model name.
            base_url: API root, without trailing slash.
            timeout: Request timeout; None keeps httpx's default.
            client: Optional pre-built client, used by tests.
        """
        self._api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        if client is not None:
            self._client = client
        elif timeout is not None:
            self._client = httpx.AsyncClient(timeout=timeout)
        else:
            self._client = httpx.AsyncClient()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiInvoker":
        api_key = settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else None
        return cls(
            api_key=api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.ai_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def invoke(
        self,
        image_base64: str,
        kind: DetectionKind,
        environmental_conditions: str = "Unknown",
    ) -> DetectionResult:
        """
        Run one detection instruction against an image.

        Args:
            image_base64: JPEG bytes, base64 encoded, without a data URI prefix.
            kind: Which instruction to send.
            environmental_conditions: Context for object detection.

        Returns:
            DetectionResult: Typed result with defaults applied.

        Raises:
            InvocationError: On network, HTTP, or parse failure.
        """
        if kind == DetectionKind.PLATE:
            instruction = PLATE_RECOGNITION_PROMPT
        elif kind == DetectionKind.OBJECTS:
            instruction = object_detection_prompt(environmental_conditions)
        else:
            instruction = THREAT_IDENTIFICATION_PROMPT

        text = await self._generate(instruction, image_base64, json_output=True)
        payload = self._parse_json(text, kind)

        try:
            reply = _REPLY_MODELS[kind].model_validate(payload)
        except ValidationError as e:
            logger.warning("model_reply_invalid", kind=kind.value, errors=e.error_count())
            raise InvocationError(f"Malformed {kind.value} reply") from e

        return reply.to_domain()

    async def extract_plate_text(self, image_base64: str) -> str | None:
        """
        Ask only for the plate number as plain text.

        Returns:
            str: Upper-cased plate text, or None if the reply was empty.

        Raises:
            InvocationError: On network or HTTP failure.
        """
        text = await self._generate(PLATE_TEXT_PROMPT, image_base64, json_output=False)
        text = text.strip().upper()
        return text or None

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _generate(self, instruction: str, image_base64: str, json_output: bool) -> str:
        if not self._api_key:
            raise InvocationError("Image-understanding API key is not configured")

        body: dict[str, Any] = {
            "contents": [
                {
                    "parts": [
                        {"text": instruction},
                        {"inlineData": {"mimeType": "image/jpeg", "data": image_base64}},
                    ]
                }
            ]
        }
        if json_output:
            body["generationConfig"] = {"responseMimeType": "application/json"}

        logger.debug("model_request", model=self.model, image_size=len(image_base64))

        try:
            response = await self._client.post(
                self.endpoint,
                json=body,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.HTTPError as e:
            logger.error("model_request_failed", error=str(e))
            raise InvocationError(f"Request to model failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                "model_request_rejected",
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise InvocationError(f"Model endpoint returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise InvocationError("Model endpoint returned non-JSON body") from e

        return self._reply_text(data)

    def _reply_text(self, data: Any) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            logger.warning("model_reply_empty", reply=str(data)[:200])
            raise InvocationError("Model reply contained no candidates") from e

        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    def _parse_json(self, text: str, kind: DetectionKind) -> dict[str, Any]:
        cleaned = _CODE_FENCE.sub("", text.strip())
        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning("model_reply_not_json", kind=kind.value, text=text[:200])
            raise InvocationError(f"Unparseable {kind.value} reply") from e

        # Some replies wrap the object in a one-element list
        if isinstance(payload, list) and len(payload) == 1:
            payload = payload[0]
        if not isinstance(payload, dict):
            raise InvocationError(f"Unexpected {kind.value} reply shape")
        return payload
