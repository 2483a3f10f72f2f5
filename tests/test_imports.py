"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_intent_schema(self):
        from src.schemas.intent_schema import Intent, IntentType, TaskKind
        assert IntentType.SEARCH_PROVIDERS == "search_providers"
        assert TaskKind.FORM_FILL == "form_fill"
        assert Intent(type="conversation").task is None

    def test_import_workflow_schema(self):
        from src.schemas.workflow_schema import Execution, ExecutionResult, Workflow
        assert ExecutionResult(success=True).error is None

    def test_import_session_schema(self):
        from src.schemas.session_schema import BookingSession, PendingAction
        assert BookingSession is not None and PendingAction is not None


class TestConversationImports:
    def test_package_reexports(self):
        from src.conversation import DialogState, DialogStateMachine
        sm = DialogStateMachine()
        assert sm.current_state == DialogState.EMPTY

    def test_import_orchestrator(self):
        from src.conversation.orchestrator import BookingOrchestrator, DialogResult
        assert DialogResult(message="hi").state.value == "empty"


class TestToolImports:
    def test_import_providers(self):
        from src.tools.providers import PROVIDER_CATALOG, search_providers
        assert "tandarts" in PROVIDER_CATALOG
        assert callable(search_providers)

    def test_import_executor(self):
        from src.tools.executor import DEFAULT_ROUTINES, TaskExecutor
        assert set(DEFAULT_ROUTINES) >= {"tandarts", "dentist", "event"}

    def test_import_calendar(self):
        from src.tools.calendar import CalendarWebhookNotifier, NullNotifier
        assert callable(NullNotifier().notify)


class TestPromptImports:
    def test_import_system_prompts(self):
        from src.prompts.system_prompts import INTENT_SYSTEM_PROMPT
        assert "search_providers" in INTENT_SYSTEM_PROMPT

    def test_import_prompt_templates(self):
        from src.prompts.prompt_templates import build_providers_message, GENERIC_ERROR_MESSAGE
        assert callable(build_providers_message)
        assert GENERIC_ERROR_MESSAGE


class TestVoiceImports:
    def test_import_voice_modules(self):
        from src.voice.intent_parser import OpenAIIntentClassifier
        from src.voice.keyword_classifier import KeywordIntentClassifier
        from src.voice.stt import WhisperTranscriber
        from src.voice.tts import ElevenLabsSynthesizer
        assert KeywordIntentClassifier is not None


class TestConfigImport:
    def test_import_config(self):
        from src.config import settings
        assert settings.app_name
        assert settings.session.ttl_minutes >= 1
        assert settings.scheduler.max_executions >= 1


class TestBootstrap:
    def test_offline_services(self, tmp_path):
        from src.bootstrap import build_services
        from src.voice.keyword_classifier import KeywordIntentClassifier

        services = build_services(data_dir=tmp_path, offline=True)
        assert isinstance(services.pipeline._classifier, KeywordIntentClassifier)
        assert services.pipeline._transcriber is None


class TestConsoleDemo:
    def test_console_session_imports(self, tmp_path):
        from console_demo import ConsoleSession
        from src.bootstrap import build_services

        session = ConsoleSession(build_services(data_dir=tmp_path, offline=True))
        assert session.session_id
