"""
Offline console demo: runs full assistant conversations without API keys.

Commands go through the real pipeline, orchestrator, state machine and
workflow store, with the keyword classifier standing in for the model and
mock automation standing in for the browser. No network calls. Records are
written to a throwaway directory unless --data-dir is given.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario recurring
"""

import argparse
import asyncio
import tempfile
from pathlib import Path
from typing import Optional

from src.bootstrap import Services, build_services
from src.config import settings
from src.conversation.state_machine import DialogState

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class ConsoleSession:
    """Drives the command pipeline from the terminal."""

    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "Hoi",
            "Zoek een tandarts in Amsterdam",
            "Nummer 2",
            "Morgen om 10 uur",
            "Ja, doe maar",
        ],
        "recurring": [
            "Plan elk kwartaal een tandartscontrole",
            "Kies de beste",
            "De eerste",
            "Ja",
            "Schrijf me elke maand in voor het evenement",
            "Ja",
        ],
        "cancel": [
            "Zoek een huisarts",
            "Nummer 1",
            "De eerste",
            "Annuleer",
            "Ja",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self, services: Services, session_id: Optional[str] = None) -> None:
        self.services = services
        self.session_id = session_id or settings.session.default_session_id

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.app_name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _state(self) -> DialogState:
        conversation = self.services.sessions.get(self.session_id)
        return conversation.state if conversation else DialogState.EMPTY

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.app_name.upper()} ASSISTANT - {title}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    async def process_input(self, text: str) -> None:
        response = await self.services.pipeline.handle_text(text, self.session_id)
        for entry in response.actions_log:
            self.system_log(entry)
        self.agent_say(response.agent_message)
        if response.execution_result and not response.execution_result.success:
            print(f"{RED}  Action failed: {response.execution_result.error}{RESET}")
        if response.workflow_id:
            print(f"{YELLOW}  Workflow scheduled: {response.workflow_id}{RESET}")
        self.system_log(f"State: {self._state().value}")

    def _print_workflows(self) -> None:
        workflows = self.services.workflows.all_workflows()
        if not workflows:
            return
        print(f"\n{BOLD}  Scheduled workflows:{RESET}")
        for wf in workflows:
            print(f"{DIM}  - {wf.label} [{wf.category}, {wf.interval}] next run {wf.next_run:%Y-%m-%d %H:%M}{RESET}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        for step in steps:
            print(f"\n{BLUE}[User] {RESET}{step}")
            await self.process_input(step)

        self._print_workflows()
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def run(self) -> None:
        self._banner("Console Demo")
        print(f"{BOLD}  Type 'quit' to exit{RESET}\n")
        self.agent_say("Hi! What can I arrange for you today?")

        while True:
            user_input = (await asyncio.to_thread(input, f"\n{BLUE}[User] {RESET}")).strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                break
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue
            await self.process_input(user_input)

        self._print_workflows()


async def _main(args: argparse.Namespace) -> None:
    with tempfile.TemporaryDirectory(prefix="lifeadmin-demo-") as tmp:
        data_dir = Path(args.data_dir) if args.data_dir else Path(tmp)
        session = ConsoleSession(build_services(data_dir=data_dir, offline=True))
        if args.scenario:
            await session.run_scenario(args.scenario)
        else:
            await session.run()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Keep records in this directory instead of a temporary one",
    )
    args = parser.parse_args(argv)

    try:
        asyncio.run(_main(args))
    except (KeyboardInterrupt, EOFError):
        print(f"\n{DIM}Session ended.{RESET}")


if __name__ == "__main__":
    main()
