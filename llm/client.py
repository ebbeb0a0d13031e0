"""Gemini client wrapper and strict JSON parsing of model replies."""

import asyncio
import json
import logging
from functools import partial
from typing import Any, Dict, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from google import genai
from google.genai import errors, types

from config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class LLMError(Exception):
    """Base exception for language model failures."""
    pass


class LLMServiceError(LLMError):
    """The model API call itself failed."""
    pass


class AnalysisParseError(LLMError):
    """The model replied, but not with a JSON object of the expected shape."""
    pass


def create_client() -> genai.Client:
    api_key = get_settings().google_api_key
    if not api_key:
        raise EnvironmentError(
            "GOOGLE_API_KEY environment variable is not set. "
            "Get an API key at https://aistudio.google.com/apikey"
        )
    return genai.Client(api_key=api_key)


def image_part(data: bytes, mime_type: str) -> types.Part:
    return types.Part.from_bytes(data=data, mime_type=mime_type)


def call_gemini(
    client: genai.Client,
    prompt: str,
    parts: Sequence[types.Part] = (),
    model: Optional[str] = None,
    response_schema: Optional[Type[BaseModel]] = None,
) -> str:
    """Send prompt (plus any image parts) and return the raw reply text."""
    config_kwargs: Dict[str, Any] = {"response_mime_type": "application/json"}
    if response_schema is not None:
        config_kwargs["response_json_schema"] = response_schema.model_json_schema()

    model = model or get_settings().gemini_model
    logger.debug("Calling %s with %d attachment(s)", model, len(parts))
    try:
        response = client.models.generate_content(
            model=model,
            contents=[*parts, prompt],
            config=types.GenerateContentConfig(**config_kwargs),
        )
    except (errors.APIError, httpx.HTTPError) as e:
        raise LLMServiceError(f"Gemini request failed: {e}") from e

    text = response.text
    if not text:
        raise AnalysisParseError("Model returned an empty response")
    return text


async def call_gemini_async(client: genai.Client, prompt: str, **kwargs) -> str:
    """Run the blocking SDK call in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(call_gemini, client, prompt, **kwargs))


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Return the first decodable JSON object in text.

    Replies are usually bare JSON, but may be wrapped in prose or a code
    fence, so every '{' is tried as a starting point.
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    raise AnalysisParseError("No JSON object found in model response")


def parse_llm_json(text: str, response_model: Type[T]) -> T:
    """Validate a model reply against response_model, raising AnalysisParseError."""
    try:
        return response_model.model_validate_json(text)
    except ValidationError:
        pass

    data = extract_json_object(text)
    try:
        return response_model.model_validate(data)
    except ValidationError as e:
        raise AnalysisParseError(
            f"Model response does not match {response_model.__name__}: {e.error_count()} errors"
        ) from e
