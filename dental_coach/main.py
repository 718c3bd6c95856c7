"""CLI entry point for the Dental Coach.

A terminal chat for testing and development, plus two knowledge-base
helpers.  For production, use the FastAPI server (dental_coach/server.py).

Usage:
    uv run python -m dental_coach.main                      # chat (quiet)
    uv run python -m dental_coach.main --debug              # chat, show API calls
    uv run python -m dental_coach.main --show-knowledge     # list entries
    uv run python -m dental_coach.main --seed PLAYBOOK.md   # import a markdown file
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("dental_coach").setLevel(logging.DEBUG if debug else logging.INFO)


def show_knowledge(store) -> None:
    """Print every knowledge entry, newest first."""
    entries = store.list_all()
    print(f"=== Knowledge Base Entries ({len(entries)}) ===")
    for entry in entries:
        preview = entry.content[:100] + ("..." if len(entry.content) > 100 else "")
        print("\n---")
        print(f"Title:      {entry.title}")
        print(f"Type:       {entry.type}")
        print(f"Active:     {'yes' if entry.is_active else 'no'}")
        print(f"Content:    {preview or 'No content'}")
        print(f"Source URL: {entry.source_url or 'None'}")
        print(f"Added by:   {entry.added_by}")
        print(f"Created:    {entry.created_at}")


def chat_loop(coach) -> None:
    """Run the interactive chat, keeping the history client-side."""
    print("\n" + "=" * 60)
    print("  Dental Coach - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new conversation.")
    print("=" * 60 + "\n")

    # One loop for the whole session; the async HTTP client is bound to it
    with asyncio.Runner() as runner:
        _chat_turns(runner, coach)


def _chat_turns(runner: asyncio.Runner, coach) -> None:
    from dental_coach.contract import render_text
    from dental_coach.errors import CompletionServiceError

    history: list[dict[str, str]] = []
    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye!")
            break
        if user_input.lower() == "new":
            history.clear()
            print("\n>> New conversation started.\n")
            continue

        history.append({"role": "user", "content": user_input})
        try:
            reply = runner.run(coach.reply(history))
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except CompletionServiceError:
            logger.exception("Completion failed")
            history.pop()
            print("\nCoach: I'm sorry, something went wrong. Please try again.\n")
            continue

        # The raw JSON goes back into history so the model sees its own format
        history.append({"role": "assistant", "content": reply.to_json()})
        print(f"\nCoach:\n{render_text(reply)}\n")


def main():
    parser = argparse.ArgumentParser(description="Dental Coach CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument(
        "--show-knowledge", action="store_true",
        help="List knowledge base entries and exit",
    )
    parser.add_argument(
        "--seed", type=Path, metavar="MARKDOWN",
        help="Import ### sections of a markdown file as knowledge entries and exit",
    )
    parser.add_argument(
        "--added-by", default="cli-admin",
        help="Identity recorded on entries created by --seed",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    # Imported after logging is set up; config reads the environment on import
    from dental_coach.config import DATABASE_URL, KNOWLEDGE_CONTEXT_MAX_CHARS, SQL_ECHO
    from dental_coach.db import create_db_engine, create_session_factory, init_database
    from dental_coach.services.knowledge_store import KnowledgeStore

    engine = create_db_engine(DATABASE_URL, echo=SQL_ECHO)
    init_database(engine)
    store = KnowledgeStore(create_session_factory(engine))

    try:
        if args.seed:
            from dental_coach.seed import seed_from_markdown

            created = seed_from_markdown(store, args.seed, added_by=args.added_by)
            print(f"Imported {len(created)} entries from {args.seed}")
            return
        if args.show_knowledge:
            show_knowledge(store)
            return

        from dental_coach.coach import CoachService
        from dental_coach.context import ContextBuilder
        from dental_coach.services.completion import build_completion_client

        coach = CoachService(
            ContextBuilder(store, max_chars=KNOWLEDGE_CONTEXT_MAX_CHARS),
            build_completion_client(),
        )
        chat_loop(coach)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
