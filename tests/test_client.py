"""Tests for the Gemini structured-generation client with a stubbed model."""

import asyncio

import pytest

from trackmoji.agents import GeminiStructuredClient, GenerationError, GenerationTimeout
from trackmoji.agents.client import array_of, number, object_schema, parse_json_payload, string
from trackmoji.config import GeminiSettings


class StubResponse:
    def __init__(self, text):
        self._text = text

    @property
    def text(self):
        if isinstance(self._text, Exception):
            raise self._text
        return self._text


class StubModel:
    def __init__(self, text=None, delay=0.0, error=None):
        self.text = text
        self.delay = delay
        self.error = error
        self.calls = []

    async def generate_content_async(self, prompt, generation_config=None):
        self.calls.append({"prompt": prompt, "generation_config": generation_config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return StubResponse(self.text)


def make_client(model, timeout=5.0):
    client = GeminiStructuredClient(GeminiSettings(api_key="test-key", timeout_seconds=timeout))
    client._model = model
    return client


class TestSchemaHelpers:
    """Tests for schema declaration helpers."""

    def test_object_schema(self):
        """Test an object schema with required fields."""
        schema = object_schema({"a": string("A"), "b": number()}, required=["a"])
        assert schema["type"] == "OBJECT"
        assert schema["required"] == ["a"]
        assert schema["properties"]["a"]["description"] == "A"

    def test_required_must_be_declared(self):
        """Test required names must be properties."""
        with pytest.raises(ValueError):
            object_schema({"a": string()}, required=["b"])

    def test_array_of(self):
        """Test an array schema."""
        schema = array_of(string())
        assert schema["type"] == "ARRAY"
        assert schema["items"]["type"] == "STRING"


class TestParseJsonPayload:
    """Tests for response body parsing."""

    def test_object(self):
        """Test a JSON object is parsed."""
        assert parse_json_payload('{"a": 1}') == {"a": 1}

    def test_non_string(self):
        """Test a non-string body is rejected."""
        with pytest.raises(GenerationError):
            parse_json_payload(None)

    def test_malformed(self):
        """Test malformed JSON is rejected."""
        with pytest.raises(GenerationError):
            parse_json_payload("{not json")

    def test_non_object(self):
        """Test a JSON array is rejected."""
        with pytest.raises(GenerationError):
            parse_json_payload("[1, 2]")


class TestGeminiStructuredClient:
    """Tests for GeminiStructuredClient.generate."""

    def test_returns_parsed_payload(self):
        """Test a JSON response is parsed."""
        model = StubModel(text='{"answer": "ok"}')
        client = make_client(model)
        payload = asyncio.run(client.generate("prompt", object_schema({"answer": string()}, ["answer"])))
        assert payload == {"answer": "ok"}
        assert model.calls[0]["prompt"] == "prompt"

    def test_requests_json_mode(self):
        """Test the call asks for JSON constrained by the schema."""
        model = StubModel(text="{}")
        schema = object_schema({"answer": string()}, ["answer"])
        asyncio.run(make_client(model).generate("p", schema))
        config = model.calls[0]["generation_config"]
        assert config.response_mime_type == "application/json"
        assert config.response_schema == schema

    def test_timeout(self):
        """Test a slow model raises GenerationTimeout."""
        client = make_client(StubModel(text="{}", delay=1.0), timeout=0.05)
        with pytest.raises(GenerationTimeout):
            asyncio.run(client.generate("p", {}))

    def test_service_failure(self):
        """Test a failing call raises GenerationError."""
        client = make_client(StubModel(error=RuntimeError("quota exceeded")))
        with pytest.raises(GenerationError, match="quota exceeded"):
            asyncio.run(client.generate("p", {}))

    def test_blocked_response(self):
        """Test a response without text raises GenerationError."""
        client = make_client(StubModel(text=ValueError("no candidates")))
        with pytest.raises(GenerationError):
            asyncio.run(client.generate("p", {}))

    def test_malformed_json(self):
        """Test malformed model output raises GenerationError."""
        client = make_client(StubModel(text="not json"))
        with pytest.raises(GenerationError):
            asyncio.run(client.generate("p", {}))

    def test_missing_api_key(self, monkeypatch):
        """Test an unconfigured client fails the call, not construction."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        client = GeminiStructuredClient()
        with pytest.raises(GenerationError, match="not configured"):
            asyncio.run(client.generate("p", {}))
