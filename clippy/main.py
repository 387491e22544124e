"""CLI entry point for the Clippy chat service.

A terminal chat for testing and development.  Conversations live in an
in-memory repository for the lifetime of the process.  For production,
use the FastAPI server (clippy/server.py).

Usage:
    python -m clippy.main            # normal mode (quiet)
    python -m clippy.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from clippy.agent import Assistant
from clippy.errors import ChatError
from clippy.repository import InMemoryConversationRepository
from clippy.service import ChatService

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("clippy").setLevel(logging.DEBUG if debug else logging.INFO)


async def _chat_loop(service: ChatService) -> None:
    conversation_id: str | None = None

    while True:
        try:
            user_input = (await asyncio.to_thread(input, "You: ")).strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            return

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye!")
            return

        if user_input.lower() == "new":
            conversation_id = None
            print("\n>> New conversation.\n")
            continue

        try:
            if conversation_id is None:
                conversation, reply = await service.start_conversation(user_input)
                conversation_id = conversation.id
                print(f"\n>> {conversation.title} [{conversation_id[:8]}]")
            else:
                reply = await service.continue_conversation(conversation_id, user_input)
            print(f"\nClippy: {reply}\n")

        except ChatError as e:
            logger.exception("Error processing message")
            print(f"\nClippy: I'm sorry, something went wrong: {e}")
            print("        Please try again or type 'new' to start a fresh conversation.\n")


async def _run() -> None:
    assistant = Assistant()
    service = ChatService(assistant, InMemoryConversationRepository())
    try:
        await _chat_loop(service)
    finally:
        await assistant.aclose()


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Clippy chat CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Clippy - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new conversation.")
    print("=" * 60 + "\n")

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        print("\n\nGoodbye!")


if __name__ == "__main__":
    main()
