"""
LifeAdmin assistant entry point.

Usage:
    Text chat:        python main.py            (uses the OpenAI classifier)
    Console demo:     python main.py console [--scenario booking|recurring|cancel]
    Scheduled run:    python main.py check-workflows
"""

import asyncio
import json
import logging
import sys

from src.config import settings

logger = logging.getLogger(__name__)

EXIT_WORDS = ("quit", "exit", "q")


async def _chat() -> None:
    """Interactive text chat through the full command pipeline."""
    from src.bootstrap import build_services

    services = build_services()
    services.sessions.start_sweeper()
    session_id = settings.session.default_session_id
    print(f"{settings.app_name} text chat. Type 'quit' to exit.")
    try:
        while True:
            text = (await asyncio.to_thread(input, "> ")).strip()
            if not text:
                continue
            if text.lower() in EXIT_WORDS:
                break
            response = await services.pipeline.handle_text(text, session_id)
            print(response.agent_message)
    finally:
        await services.sessions.stop_sweeper()


def _run_chat_mode() -> None:
    try:
        asyncio.run(_chat())
    except (KeyboardInterrupt, EOFError):
        print()


def _run_console_mode(argv: list[str]) -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import main as console_main

    console_main(argv)


def _run_check_workflows() -> None:
    """Run every due workflow once and print the results as JSON."""
    from src.bootstrap import build_services

    services = build_services(offline=True)
    results = asyncio.run(services.runner.run_due())
    print(json.dumps(
        {
            "checked": len(results),
            "results": [r.model_dump(mode="json") for r in results],
        },
        indent=2,
    ))


if __name__ == "__main__":
    mode = sys.argv[1] if len(sys.argv) > 1 else "chat"
    if mode == "console":
        _run_console_mode(sys.argv[2:])
    elif mode == "check-workflows":
        _run_check_workflows()
    else:
        _run_chat_mode()
