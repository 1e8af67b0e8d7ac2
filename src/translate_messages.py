import argparse
import asyncio
import logging
import sys
from typing import Callable, List, Optional

# --- Python Version Check ---
if sys.version_info < (3, 9):
    sys.stderr.write("Error: This tool requires Python 3.9 or newer.\n")
    sys.stderr.write(f"You are running Python {sys.version.split()[0]}.\n")
    sys.exit(1)
# --- End Version Check ---

from src.app_config import AppConfig, load_app_config
from src.catalog import Catalog
from src.entry import EntryState
from src.errors import CatalogLoadError, EditorError
from src.snapshot_store import FileSnapshotStore
from src.status import LoggingStatusSink, ProgressStatusSink, format_status
from src.translation_session import TranslationSession

logger = logging.getLogger("messages_editor.cli")

QUIT_COMMAND = ":q"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="messages-editor",
        description="Translate a messages.json catalog against its base language."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show the translation summary.")

    check = subparsers.add_parser("check", help="List invalid and unchanged translations.")
    check.add_argument("--all", action="store_true", help="Also list untranslated entries.")

    set_cmd = subparsers.add_parser("set", help="Translate a single message.")
    set_cmd.add_argument("key", help="Message id.")
    set_cmd.add_argument("text", help="Translated text. An empty string clears the translation.")

    edit = subparsers.add_parser("edit", help="Interactively translate untranslated messages.")
    edit.add_argument("--include-translated", action="store_true",
                      help="Also walk through messages that already have a translation.")

    import_cmd = subparsers.add_parser("import", help="Replace the stored work with a messages.json file.")
    import_cmd.add_argument("file")

    export = subparsers.add_parser("export", help="Write the translated messages.json.")
    export.add_argument("file", nargs="?", help="Output path (defaults to the configured export path).")

    reset = subparsers.add_parser("reset", help="Discard all stored work.")
    reset.add_argument("--yes", action="store_true", help="Confirm that all work will be gone.")
    return parser


def print_check_report(catalog: Catalog, include_untouched: bool = False) -> int:
    """
    Print entries that need attention.

    Returns:
        The number of invalid entries.
    """
    invalid = 0
    for entry in catalog:
        if entry.state is EntryState.INVALID:
            invalid += 1
            print(f"[error] {entry.id}")
            for line in entry.diagnostic.splitlines():
                print(f"    {line}")
        elif entry.state is EntryState.VALID_BUT_UNCHANGED:
            print(f"[unchanged] {entry.id}")
        elif include_untouched and entry.state is EntryState.UNTOUCHED:
            print(f"[untranslated] {entry.id}")
    return invalid


async def interactive_edit(
        session: TranslationSession,
        include_translated: bool = False,
        read_line: Callable[[str], str] = input
) -> int:
    """
    Prompt for a translation of each message in catalog order.

    An empty answer keeps the current text, ":q" stops. After every answer
    the event loop gets a chance to run the coalesced catalog update.

    Returns:
        The number of messages edited.
    """
    catalog = session.catalog
    edited = 0
    for entry in list(catalog):
        if entry.is_translated and not include_translated:
            continue
        print()
        print(entry.id)
        if entry.description:
            print(f"  ({entry.description})")
        print(f"  {entry.source_message}")
        if entry.is_translated:
            print(f"  current: {entry.translated_text}")
        try:
            answer = read_line("> ")
        except EOFError:
            break
        if answer.strip() == QUIT_COMMAND:
            break
        if not answer.strip():
            continue
        session.translate(entry.id, answer)
        edited += 1
        if entry.state is EntryState.INVALID:
            print(entry.diagnostic)
        elif entry.state is EntryState.VALID_BUT_UNCHANGED:
            print("Warning: translation is identical to the source message.")
        await asyncio.sleep(0)
    return edited


async def run_command(args: argparse.Namespace, config: AppConfig) -> int:
    store = FileSnapshotStore(config.snapshot_dir)
    progress = ProgressStatusSink() if args.command == "edit" else None
    sink = progress or LoggingStatusSink(level=logging.DEBUG)
    session = TranslationSession.from_config(config, store, status_sink=sink)

    if args.command == "reset" and not args.yes:
        print("Refusing to reset without --yes: ALL WORK WILL BE GONE!", file=sys.stderr)
        return 2

    try:
        if args.command == "reset":
            catalog = await session.reset()
        elif args.command == "import":
            catalog = await session.import_work(args.file)
        else:
            catalog = await session.load()

        exit_code = 0
        if args.command == "check":
            exit_code = 1 if print_check_report(catalog, include_untouched=args.all) else 0
        elif args.command == "set":
            entry = session.translate(args.key, args.text)
            if entry.diagnostic:
                print(entry.diagnostic, file=sys.stderr)
                exit_code = 1
        elif args.command == "edit":
            edited = await interactive_edit(session, include_translated=args.include_translated)
            logger.info("Edited %d message(s).", edited)
        elif args.command == "export":
            path = args.file or config.export_path
            session.export(path)
            print(f"Saved {len(catalog.translated_entries)} translation(s) to {path}")

        await catalog.wait_idle()
        print(format_status(catalog.summary or catalog.compute_summary()))
        return exit_code
    finally:
        await session.close()
        if progress is not None:
            progress.close()


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function: parse arguments, load configuration and run one command.
    """
    args = build_parser().parse_args(argv)
    config = load_app_config()
    try:
        return await run_command(args, config)
    except CatalogLoadError as e:
        logger.critical("Cannot continue without a base catalog: %s", e)
        return 1
    except EditorError as e:
        logger.error("%s", e)
        return 1


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
