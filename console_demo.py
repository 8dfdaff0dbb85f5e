"""
Offline console demo: chat with the booking bot in the terminal.

Runs the real engine (flow controller, availability, staff matching and
booking persistence) against a local database. No WhatsApp account and no
network calls. Designed for demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario change
"""

import argparse
import asyncio
from typing import Optional

from salonbot.config import settings
from salonbot.engine import BookingEngine, build_engine
from salonbot.schemas.conversation_schema import BookingStep, InboundMessage

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_PHONE = "+919876543210"


class ConsoleSession:
    """Plays one customer's chat with the bot in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "hi",
            "Hair Cut & Style",
            "tomorrow",
            "1",
            "yes",
        ],
        "change": [
            "book",
            "2",
            "tomorrow",
            "Facial Cleanup",
            "2",
            "change date",
            "day after tomorrow",
            "1",
            "no",
            "change time",
            "2",
            "yes",
        ],
        "reset": [
            "hello",
            "Manicure",
            "start over",
            "book",
        ],
    }

    def __init__(
        self,
        engine: Optional[BookingEngine] = None,
        tenant_id: Optional[str] = None,
        phone_number: str = DEMO_PHONE,
    ) -> None:
        self.tenant_id = tenant_id or settings.default_tenant_id
        self.engine = engine or build_engine(seed_tenant_id=self.tenant_id)
        self.phone_number = phone_number
        self.steps: list[str] = [BookingStep.WELCOME.value]

    def bot_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.business.name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def send(self, text: str) -> None:
        reply = asyncio.run(self.engine.handle_message(InboundMessage(
            tenant_id=self.tenant_id,
            phone_number=self.phone_number,
            message=text,
            customer_name="Demo Customer",
        )))
        self.bot_say(reply.reply_text)
        self.system_log(f"step: {reply.current_step.value}")
        if reply.booking_id:
            self.system_log(f"booking persisted: {reply.booking_id}")
        self.steps.append(reply.current_step.value)

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  SALON BOOKING BOT - {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")

    def _summary(self, title: str) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{DIM}  Step trace: {' -> '.join(self.steps)}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        for step in steps:
            print(f"\n{BLUE}[Customer] {RESET}{step}")
            self.send(step)
        self._summary(f"Scenario '{scenario}' complete.")

    def run(self) -> None:
        self._banner("Console Demo")
        print(f"{BOLD}  Type 'quit' to exit{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{YELLOW}  Say 'hi' or 'book' to begin.{RESET}")

        while True:
            try:
                user_input = input(f"\n{BLUE}[Customer] {RESET}").strip()
            except (EOFError, KeyboardInterrupt):
                print(f"\n{DIM}Session ended.{RESET}")
                break
            if user_input.lower() in ("quit", "exit"):
                break
            if not user_input:
                continue
            self.send(user_input)

        self._summary("Conversation complete.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database to use (defaults to DATABASE_URL; scenarios use in-memory SQLite)",
    )
    args = parser.parse_args(argv)

    database_url = args.database_url
    if args.scenario and database_url is None:
        database_url = "sqlite:///:memory:"
    tenant_id = settings.default_tenant_id
    session = ConsoleSession(
        engine=build_engine(database_url, seed_tenant_id=tenant_id),
        tenant_id=tenant_id,
    )
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
