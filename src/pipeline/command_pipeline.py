"""
Command pipeline: transcription -> intent -> dialog handling -> speech.

Stages run one after another and each appends to the action log in that
order. Any failure before synthesis is answered with a generic spoken error
instead of an exception; if synthesizing that error also fails the
response carries empty audio.
"""

from typing import Optional, Protocol

from src.conversation.orchestrator import BookingOrchestrator, DialogResult
from src.logging_context import get_session_logger, set_session_id
from src.prompts.prompt_templates import GENERIC_ERROR_MESSAGE
from src.schemas.command_schema import CommandResponse
from src.schemas.intent_schema import DialogContext, Intent
from src.voice.intent_parser import IntentParseError
from src.voice.stt import STTError
from src.voice.tts import audio_to_base64

logger = get_session_logger(__name__)

LOG_PREVIEW_CHARS = 60


class Transcriber(Protocol):
    async def transcribe(self, audio: bytes) -> str:
        ...


class IntentClassifier(Protocol):
    async def classify(self, text: str, context: Optional[DialogContext] = None) -> Intent:
        ...


class Synthesizer(Protocol):
    async def synthesize(self, text: str) -> bytes:
        ...


class CommandPipeline:
    """Turns one voice or text command into a ``CommandResponse``."""

    def __init__(
        self,
        orchestrator: BookingOrchestrator,
        classifier: IntentClassifier,
        transcriber: Optional[Transcriber] = None,
        synthesizer: Optional[Synthesizer] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._classifier = classifier
        self._transcriber = transcriber
        self._synthesizer = synthesizer

    async def handle_audio(self, audio: bytes, session_id: str) -> CommandResponse:
        set_session_id(session_id)
        actions_log: list[str] = []
        transcript = ""
        try:
            if self._transcriber is None:
                raise RuntimeError("No speech-to-text backend configured")
            actions_log.append("STT: transcribing audio")
            transcript = await self._transcriber.transcribe(audio)
            actions_log.append(f"STT done: \"{transcript}\"")
            return await self._process(transcript, session_id, actions_log)
        except Exception as exc:
            return await self._error_response(exc, transcript, actions_log)

    async def handle_text(self, text: str, session_id: str) -> CommandResponse:
        set_session_id(session_id)
        actions_log: list[str] = [f"Text input: \"{text}\""]
        try:
            return await self._process(text, session_id, actions_log)
        except Exception as exc:
            return await self._error_response(exc, text, actions_log)

    async def _process(
        self, transcript: str, session_id: str, actions_log: list[str]
    ) -> CommandResponse:
        actions_log.append("Intent: analysing command")
        context = self._orchestrator.dialog_context(session_id)
        intent = await self._classifier.classify(transcript, context)
        actions_log.append(f"Intent: {intent.type.value}")

        result = await self._orchestrator.handle(session_id, intent, actions_log)
        actions_log.append(f"Agent: \"{result.message[:LOG_PREVIEW_CHARS]}\"")

        audio = await self._speak(result.message, actions_log)
        return self._build_response(transcript, intent, result, actions_log, audio)

    async def _speak(self, message: str, actions_log: list[str]) -> str:
        """Synthesize ``message``; a failure yields empty audio."""
        if self._synthesizer is None:
            return ""
        actions_log.append("TTS: generating speech")
        try:
            audio = await self._synthesizer.synthesize(message)
        except Exception as exc:
            logger.warning("Speech synthesis failed: %s", exc)
            actions_log.append(f"TTS failed: {exc}")
            return ""
        actions_log.append("TTS done")
        return audio_to_base64(audio)

    @staticmethod
    def _build_response(
        transcript: str,
        intent: Intent,
        result: DialogResult,
        actions_log: list[str],
        audio: str,
    ) -> CommandResponse:
        return CommandResponse(
            user_transcript=transcript,
            intent=intent,
            agent_message=result.message,
            actions_log=actions_log,
            audio=audio,
            providers=result.providers,
            selected_provider=result.selected_provider,
            available_slots=result.available_slots,
            booking_session=result.session,
            action_executed=result.action_executed,
            execution_result=result.execution_result,
            workflow_id=result.workflow.id if result.workflow else None,
        )

    async def _error_response(
        self, exc: Exception, transcript: str, actions_log: list[str]
    ) -> CommandResponse:
        expected = isinstance(exc, (IntentParseError, STTError))
        logger.error("Command failed: %s", exc, exc_info=not expected)
        actions_log.append(f"Error: {exc}")
        audio = await self._speak(GENERIC_ERROR_MESSAGE, actions_log)
        return CommandResponse(
            user_transcript=transcript,
            agent_message=GENERIC_ERROR_MESSAGE,
            actions_log=actions_log,
            audio=audio,
        )

