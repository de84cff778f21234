r"""backend/app/services/llm_service.py

Structured generation backed by Google's Gemini API.

Every AI-assisted feature sends an instruction together with a pydantic output
model.  The client asks Gemini for a JSON reply matching the model's schema and
validates the reply before handing it back.  Anything that prevents a
conforming result (no API key, SDK errors, blocked replies, schema mismatches)
surfaces as ``GenerationError``.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from typing import Any, Awaitable, Dict, Optional, Protocol, Type, TypeVar

import google.generativeai as genai
from pydantic import BaseModel, ValidationError

from ..core.errors import GenerationError
from ..core.observability import GENERATION_LATENCY

LOGGER = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")

DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_IMAGE_MODEL = "imagen-3.0-generate-002"

# JSON-schema keywords understood by Gemini's response_schema.
_SUPPORTED_KEYS = ("type", "description", "enum", "format")


class StructuredGenerationClient(Protocol):
    """Anything that can turn an instruction into an instance of ``output_schema``."""

    async def generate(self, instruction: str, output_schema: Type[ModelT]) -> ModelT:
        ...


class ImageGenerationClient(Protocol):
    """Anything that can turn a prompt into an image, returned as a data URI."""

    async def generate_image(self, prompt: str) -> str:
        ...


def response_schema_for(model: Type[BaseModel]) -> Dict[str, Any]:
    """Translate a pydantic model into the schema dialect Gemini accepts.

    Gemini rejects ``$ref``, ``title`` and ``default``; references are inlined
    and only the supported keywords are kept.  Property names use the model's
    aliases so the reply validates with ``model_validate_json``.
    """

    schema = model.model_json_schema(by_alias=True)
    return _convert_node(schema, schema.get("$defs", {}))


def _convert_node(node: Dict[str, Any], defs: Dict[str, Any]) -> Dict[str, Any]:
    if "$ref" in node:
        name = node["$ref"].rsplit("/", 1)[-1]
        return _convert_node(defs[name], defs)
    if "anyOf" in node:
        # Optional[X] renders as anyOf [X, null]; keep X.
        options = [option for option in node["anyOf"] if option.get("type") != "null"]
        converted = _convert_node(options[0], defs)
        if "description" in node:
            converted["description"] = node["description"]
        return converted

    converted = {key: node[key] for key in _SUPPORTED_KEYS if key in node}
    if node.get("type") == "object":
        converted["properties"] = {
            name: _convert_node(child, defs) for name, child in node.get("properties", {}).items()
        }
        if node.get("required"):
            converted["required"] = list(node["required"])
    elif node.get("type") == "array" and "items" in node:
        converted["items"] = _convert_node(node["items"], defs)
    return converted


def _response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    if not isinstance(text, str) or not text.strip():
        raise GenerationError("The generation service returned an empty response.")
    return text


class GeminiGenerationClient:
    """Structured-generation client for ``google-generativeai``.

    The SDK is configured lazily on first use so the application can start
    without credentials; calls made without an API key fail with
    ``GenerationError``.
    """

    def __init__(self, api_key: Optional[str], model_name: str = DEFAULT_MODEL) -> None:
        self._api_key = api_key
        self._model_name = model_name or DEFAULT_MODEL
        self._model: Optional[Any] = None

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _get_model(self) -> Any:
        if not self._api_key:
            raise GenerationError("The generation service is not configured; set GEMINI_API_KEY.")
        if self._model is None:
            genai.configure(api_key=self._api_key)
            self._model = genai.GenerativeModel(self._model_name)
        return self._model

    async def generate(self, instruction: str, output_schema: Type[ModelT]) -> ModelT:
        model = self._get_model()
        config = genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=response_schema_for(output_schema),
        )

        started = time.perf_counter()
        try:
            response = await model.generate_content_async(instruction, generation_config=config)
            text = _response_text(response)
        except GenerationError:
            raise
        except Exception as exc:
            LOGGER.warning("Gemini call failed for %s: %s", output_schema.__name__, exc)
            raise GenerationError(str(exc) or exc.__class__.__name__) from exc
        finally:
            GENERATION_LATENCY.labels(output_schema.__name__).observe(time.perf_counter() - started)

        try:
            return output_schema.model_validate_json(text)
        except ValidationError as exc:
            LOGGER.warning("Gemini reply did not match %s: %s", output_schema.__name__, exc)
            raise GenerationError(
                f"The generation service returned output that does not match {output_schema.__name__}."
            ) from exc

    def close(self) -> None:
        """Drop the cached model handle."""

        self._model = None


class GeminiImageClient:
    """Product photos from Imagen through ``google-generativeai``.

    ``generate_images`` is blocking, so it runs in a worker thread.  The first
    generated image is returned as a ``data:image/png;base64,...`` URI.
    """

    def __init__(self, api_key: Optional[str], model_name: str = DEFAULT_IMAGE_MODEL) -> None:
        self._api_key = api_key
        self._model_name = model_name or DEFAULT_IMAGE_MODEL
        self._model: Optional[Any] = None

    @property
    def model_name(self) -> str:
        return self._model_name

    def _get_model(self) -> Any:
        if not self._api_key:
            raise GenerationError("The generation service is not configured; set GEMINI_API_KEY.")
        if self._model is None:
            genai.configure(api_key=self._api_key)
            self._model = genai.ImageGenerationModel(self._model_name)
        return self._model

    async def generate_image(self, prompt: str) -> str:
        model = self._get_model()
        started = time.perf_counter()
        try:
            result = await asyncio.to_thread(model.generate_images, prompt=prompt, number_of_images=1)
        except Exception as exc:
            LOGGER.warning("Imagen call failed: %s", exc)
            raise GenerationError(str(exc) or exc.__class__.__name__) from exc
        finally:
            GENERATION_LATENCY.labels("ProductImage").observe(time.perf_counter() - started)

        images = list(getattr(result, "images", None) or [])
        # The SDK only exposes the generated bytes as ``_image_bytes``.
        data = getattr(images[0], "_image_bytes", None) if images else None
        if not data:
            raise GenerationError("Image generation failed to produce an image.")
        return "data:image/png;base64," + base64.b64encode(data).decode("ascii")

    def close(self) -> None:
        self._model = None


async def with_timeout(call: Awaitable[T], timeout: Optional[float]) -> T:
    """Await ``call`` for at most ``timeout`` seconds; expiry is a ``GenerationError``."""

    if timeout is None or timeout <= 0:
        return await call
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise GenerationError(f"The generation service did not respond within {timeout:g} seconds.") from exc
