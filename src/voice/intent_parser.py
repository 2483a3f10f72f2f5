"""
Intent classification with an OpenAI chat model in JSON mode.

The model sees the intent system prompt plus a hint about the current
dialog position and must answer with a single JSON object, which is
validated into an ``Intent``.
"""

import json
import logging
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from src.config import settings
from src.prompts.system_prompts import INTENT_SYSTEM_PROMPT, build_context_hint
from src.schemas.intent_schema import DialogContext, Intent

logger = logging.getLogger(__name__)

MAX_COMPLETION_TOKENS = 500


class IntentParseError(Exception):
    """Raised when an utterance cannot be turned into an intent."""

    def __init__(self, message: str, raw_response: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_response = raw_response


def parse_intent_payload(raw: str) -> Intent:
    """Validate the model's JSON answer.

    Null task fields are dropped so the task defaults apply.

    Raises:
        IntentParseError: On invalid JSON, a missing type or bad field values.
    """
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise IntentParseError(f"Invalid JSON from model: {exc}", raw) from exc
    if not isinstance(data, dict) or not data.get("type"):
        raise IntentParseError("Missing required field: type", raw)

    task = data.get("task")
    if isinstance(task, dict):
        data["task"] = {k: v for k, v in task.items() if v is not None}

    try:
        return Intent.model_validate(data)
    except ValidationError as exc:
        raise IntentParseError(f"Malformed intent: {exc}", raw) from exc


class OpenAIIntentClassifier:
    """Classifies free text into an ``Intent``."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.voice.openai_api_key
        self._model = model or settings.voice.intent_model
        self._temperature = (
            temperature if temperature is not None else settings.voice.intent_temperature
        )
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise IntentParseError("OPENAI_API_KEY is not set")
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def classify(self, text: str, context: Optional[DialogContext] = None) -> Intent:
        if not text or not text.strip():
            raise IntentParseError("Input text is empty")

        client = self._get_client()
        system_prompt = INTENT_SYSTEM_PROMPT + build_context_hint(context or DialogContext())
        logger.info("Classifying: %r", text)

        try:
            completion = await client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": text.strip()},
                ],
                temperature=self._temperature,
                max_tokens=MAX_COMPLETION_TOKENS,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise IntentParseError(f"Model call failed: {exc}") from exc

        raw = completion.choices[0].message.content if completion.choices else None
        if not raw:
            raise IntentParseError("Model returned an empty response")

        logger.debug("Raw intent response: %s", raw)
        intent = parse_intent_payload(raw)
        logger.info("Intent: %s", intent.type.value)
        return intent
