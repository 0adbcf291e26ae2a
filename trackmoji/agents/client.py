"""
Structured-Generation Client

DESIGN DECISION: Every call to the generative model goes through ONE
client that enforces a JSON response mode and a declared output schema.
Prompt engineering lives in the agents; transport, deadlines and
payload parsing live here.

The client either returns a parsed JSON object or raises GenerationError.
It never returns partial or unparsed text.
"""

import asyncio
import json
from typing import Any, Optional, Protocol

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from trackmoji.config import GeminiSettings, get_settings


logger = structlog.get_logger(__name__)


# =============================================================================
# SCHEMA DESCRIPTORS
# =============================================================================
# Gemini response schemas are OpenAPI-style dicts. These helpers keep the
# declarations in the agents short and uniform.

def string(description: Optional[str] = None) -> dict:
    return _primitive("STRING", description)


def number(description: Optional[str] = None) -> dict:
    return _primitive("NUMBER", description)


def array_of(items: dict, description: Optional[str] = None) -> dict:
    schema = {"type": "ARRAY", "items": items}
    if description:
        schema["description"] = description
    return schema


def object_schema(
    properties: dict[str, dict],
    required: Optional[list[str]] = None,
    description: Optional[str] = None,
) -> dict:
    """Object schema; every name in `required` must be a declared property."""
    unknown = set(required or []) - set(properties)
    if unknown:
        raise ValueError(f"Required fields not declared as properties: {sorted(unknown)}")

    schema: dict[str, Any] = {"type": "OBJECT", "properties": properties}
    if required:
        schema["required"] = list(required)
    if description:
        schema["description"] = description
    return schema


def _primitive(type_name: str, description: Optional[str]) -> dict:
    schema = {"type": type_name}
    if description:
        schema["description"] = description
    return schema


# =============================================================================
# CLIENT
# =============================================================================

class StructuredGenerator(Protocol):
    """Anything that can turn a prompt plus a schema into a JSON object."""

    async def generate(self, prompt: str, schema: dict) -> dict:
        ...


def parse_json_payload(text: Any) -> dict:
    """
    Parse the model's response body.

    Raises:
        GenerationError: if the body is not a string holding a JSON object
    """
    if not isinstance(text, str):
        raise GenerationError("Failed to get a valid text response from the AI model.")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Model returned malformed JSON: {e}") from e

    if not isinstance(payload, dict):
        raise GenerationError(
            f"Model returned JSON {type(payload).__name__}, expected an object"
        )

    return payload


class GeminiStructuredClient:
    """
    Gemini-backed structured generation.

    Every call:
    - requests application/json output constrained by `schema`
    - is bounded by GeminiSettings.timeout_seconds
    - is attempted exactly once (failures degrade upstream, no retries)
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings
        self._model = None

    def _configure_genai(self):
        """
        Configure Google Generative AI on first use.

        A missing Gemini configuration fails the call, not the process.
        """
        if self._settings is None:
            try:
                self._settings = get_settings().gemini
            except ValidationError as e:
                raise GenerationError(f"Gemini is not configured: {e}") from e

        if self._model is None:
            genai.configure(api_key=self._settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=self._settings.model_name,
            )

    async def generate(self, prompt: str, schema: dict) -> dict:
        """
        Call the model and return its output as a parsed JSON object.

        Raises:
            GenerationTimeout: the deadline elapsed before the model answered
            GenerationError: the call failed, the client is not configured,
                or the payload was not a JSON object
        """
        self._configure_genai()

        generation_config = genai.GenerationConfig(
            temperature=self._settings.temperature,
            max_output_tokens=self._settings.max_tokens,
            response_mime_type="application/json",
            response_schema=schema,
        )
        timeout = self._settings.timeout_seconds

        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(
                    prompt,
                    generation_config=generation_config,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeout(
                f"Model did not respond within {timeout:g}s"
            ) from e
        except Exception as e:
            raise GenerationError(f"Generation request failed: {e}") from e

        try:
            text = response.text
        except Exception as e:
            # Blocked or empty candidates surface as an exception on .text
            raise GenerationError(f"Model response carried no text: {e}") from e

        payload = parse_json_payload(text)
        logger.debug(
            "structured_generation_completed",
            model=self._settings.model_name,
            fields=sorted(payload),
        )
        return payload


class GenerationError(Exception):
    """Structured generation failed (service, transport or payload)."""
    pass


class GenerationTimeout(GenerationError):
    """The generation deadline elapsed."""
    pass
