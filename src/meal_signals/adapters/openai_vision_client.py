"""OpenAI Responses API client for meal recognition."""

import json
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from meal_signals.domain.errors import (
    RecognitionMalformedError,
    RecognitionNetworkError,
    RecognitionTimeoutError,
)
from meal_signals.services.recognition import VisionModelClient


@dataclass
class OpenAIVisionClient(VisionModelClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float = 60.0
    ) -> "OpenAIVisionClient":
        """Create an OpenAI vision client."""
        return cls(client=AsyncOpenAI(api_key=api_key, timeout=timeout_seconds))

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "meal_analysis",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.APITimeoutError as exc:
            raise RecognitionTimeoutError("Recognition request timed out") from exc
        except openai.APIConnectionError as exc:
            raise RecognitionNetworkError(
                f"Recognition request failed: {exc}"
            ) from exc
        except openai.APIStatusError as exc:
            raise RecognitionNetworkError(
                f"Recognition service returned status {exc.status_code}"
            ) from exc

        output_text = response.output_text
        if not output_text:
            raise RecognitionMalformedError("Recognition returned an empty response")
        try:
            payload = json.loads(_strip_code_fences(output_text))
        except json.JSONDecodeError as exc:
            raise RecognitionMalformedError(
                f"Recognition response is not JSON: {output_text[:200]}"
            ) from exc
        if not isinstance(payload, dict):
            raise RecognitionMalformedError("Recognition response is not an object")
        return payload


def _strip_code_fences(text: str) -> str:
    """Remove markdown code fences some models wrap around JSON."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.removeprefix("```json").removeprefix("```")
        cleaned = cleaned.removesuffix("```")
    return cleaned.strip()
