"""Speech-to-text through the OpenAI Whisper API."""

import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from src.config import settings

logger = logging.getLogger(__name__)


class STTError(Exception):
    """Raised when audio cannot be transcribed."""


class WhisperTranscriber:
    """Transcribes recorded audio (webm/wav/mp3 bytes) into text."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        language: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.voice.openai_api_key
        self._model = model or settings.voice.stt_model
        self._language = language or settings.voice.stt_language
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise STTError("OPENAI_API_KEY is not set")
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def transcribe(self, audio: bytes, filename: str = "audio.webm") -> str:
        if not audio:
            raise STTError("Audio buffer is empty")

        client = self._get_client()
        logger.info("Transcribing %d bytes of audio", len(audio))
        try:
            transcription = await client.audio.transcriptions.create(
                model=self._model,
                file=(filename, audio),
                language=self._language,
            )
        except OpenAIError as exc:
            raise STTError(f"Transcription failed: {exc}") from exc

        text = (transcription.text or "").strip()
        if not text:
            raise STTError("Transcription returned no text")
        logger.info("Transcribed: %r", text)
        return text
