"""Text-to-speech through the ElevenLabs HTTP API."""

import base64
import logging
from typing import Optional

import httpx

from src.config import settings

logger = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
DEFAULT_STABILITY = 0.5
DEFAULT_SIMILARITY_BOOST = 0.75
SYNTHESIS_TIMEOUT_SEC = 30.0


class TTSError(Exception):
    """Raised when speech cannot be synthesized."""


def audio_to_base64(audio: bytes) -> str:
    return base64.b64encode(audio).decode("ascii")


class ElevenLabsSynthesizer:
    """Turns reply text into MP3 audio."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.voice.elevenlabs_api_key
        self._voice_id = voice_id or settings.voice.tts_voice_id
        self._model = model or settings.voice.tts_model
        self._client = client

    async def _post(self, url: str, payload: dict, headers: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(
                url, json=payload, headers=headers, timeout=SYNTHESIS_TIMEOUT_SEC
            )
        async with httpx.AsyncClient(timeout=SYNTHESIS_TIMEOUT_SEC) as client:
            return await client.post(url, json=payload, headers=headers)

    async def synthesize(self, text: str) -> bytes:
        if not self._api_key:
            raise TTSError("ELEVENLABS_API_KEY is not set")
        if not text or not text.strip():
            raise TTSError("Text to synthesize is empty")

        url = f"{ELEVENLABS_API_URL}/text-to-speech/{self._voice_id}"
        payload = {
            "text": text,
            "model_id": self._model,
            "voice_settings": {
                "stability": DEFAULT_STABILITY,
                "similarity_boost": DEFAULT_SIMILARITY_BOOST,
            },
        }
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self._api_key,
        }

        logger.info("Synthesizing %d characters", len(text))
        try:
            response = await self._post(url, payload, headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TTSError(f"Speech synthesis failed: {exc}") from exc
        return response.content
