"""
Service wiring.

Builds the stores, executor, orchestrator and pipeline from configuration.
Entry points call ``build_services``; tests construct the pieces directly
with fakes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from src.config import settings
from src.conversation.orchestrator import BookingOrchestrator
from src.conversation.session_store import SessionStore
from src.pipeline.command_pipeline import CommandPipeline
from src.scheduling.runner import ScheduledRunDriver
from src.scheduling.workflow_store import WorkflowStore
from src.storage.profile_store import ProfileStore
from src.tools.calendar import create_notifier
from src.tools.executor import TaskExecutor
from src.utils import utc_now
from src.voice.intent_parser import OpenAIIntentClassifier
from src.voice.keyword_classifier import KeywordIntentClassifier
from src.voice.stt import WhisperTranscriber
from src.voice.tts import ElevenLabsSynthesizer

logger = logging.getLogger(__name__)


@dataclass
class Services:
    profiles: ProfileStore
    workflows: WorkflowStore
    sessions: SessionStore
    executor: TaskExecutor
    orchestrator: BookingOrchestrator
    pipeline: CommandPipeline
    runner: ScheduledRunDriver


def build_services(
    data_dir: Optional[Path] = None,
    offline: bool = False,
    clock: Callable[[], datetime] = utc_now,
) -> Services:
    """Wire every component.

    ``offline`` swaps the model-backed classifier for the keyword one and
    disables speech in and out, so no API keys or network are needed.
    """
    data_dir = Path(data_dir or settings.storage.data_dir)
    profiles = ProfileStore(data_dir)
    workflows = WorkflowStore(data_dir)
    sessions = SessionStore(clock=clock)
    executor = TaskExecutor(profiles)
    orchestrator = BookingOrchestrator(
        sessions, executor, workflows, profiles,
        notifier=create_notifier(),
        clock=clock,
    )

    if offline:
        pipeline = CommandPipeline(orchestrator, KeywordIntentClassifier())
    else:
        pipeline = CommandPipeline(
            orchestrator,
            OpenAIIntentClassifier(),
            transcriber=WhisperTranscriber(),
            synthesizer=ElevenLabsSynthesizer(),
        )

    logger.info("Services ready (data: %s, offline: %s)", data_dir, offline)
    return Services(
        profiles=profiles,
        workflows=workflows,
        sessions=sessions,
        executor=executor,
        orchestrator=orchestrator,
        pipeline=pipeline,
        runner=ScheduledRunDriver(workflows, executor, clock=clock),
    )
