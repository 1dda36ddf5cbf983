"""
savepoint CLI
~~~~~~~~~~~~~

Command-line interface for savepoint.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any

from savepoint.exceptions import SavePointError


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="savepoint",
        description="savepoint — Named save points and rollback for project trees",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Project root (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to savepoint.yaml",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command")

    # save command
    save_parser = subparsers.add_parser("save", help="Save the project tree under a name")
    save_parser.add_argument(
        "name",
        nargs="?",
        default=None,
        help="Save point name (prompted for if omitted)",
    )
    save_parser.add_argument("-m", "--message", type=str, default=None, help="Optional message")

    # list command
    subparsers.add_parser("list", help="List save points, newest first")

    # rollback command
    rollback_parser = subparsers.add_parser(
        "rollback", help="Replace the project tree with a save point"
    )
    rollback_parser.add_argument("name", help="Save point name")
    rollback_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # undo command
    undo_parser = subparsers.add_parser("undo", help="Undo the most recent rollback")
    undo_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a save point")
    delete_parser.add_argument("name", help="Save point name")
    delete_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # backup command
    backup_parser = subparsers.add_parser("backup", help="Replace the project backup")
    backup_parser.add_argument("-m", "--message", type=str, default="", help="Optional message")

    # restore command
    restore_parser = subparsers.add_parser(
        "restore", help="Replace the project tree with the project backup"
    )
    restore_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # info command
    subparsers.add_parser("info", help="Show storage locations and undo/backup state")

    # version command
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from savepoint import __version__

        print(f"savepoint {__version__}")
        return

    handlers = {
        "save": _run_save,
        "list": _run_list,
        "rollback": _run_rollback,
        "undo": _run_undo,
        "delete": _run_delete,
        "backup": _run_backup,
        "restore": _run_restore,
        "info": _run_info,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        session = _make_session(args)
    except SavePointError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    with session:
        ok = handler(session, args)
    if not ok:
        sys.exit(1)


def _configure_logging(config: Any, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level)
    logging.basicConfig(level=level, format=config.logging.format)


def _make_session(args: argparse.Namespace) -> Any:
    """Create a SavePointSession from config or defaults."""
    from savepoint.config.defaults import DEFAULT_CONFIG
    from savepoint.config.loader import load_config, load_config_from_dict
    from savepoint.core.host import ConsoleHost
    from savepoint.core.session import SavePointSession

    if args.config:
        config = load_config(args.config)
    else:
        config = load_config_from_dict(DEFAULT_CONFIG)
    _configure_logging(config, args.verbose)

    project = args.project or os.getcwd()
    return SavePointSession(project, config=config, host=ConsoleHost())


def _finish(result: Any) -> bool:
    """Map an operation outcome to success; a declined prompt is not a failure."""
    if result is None:
        print("Cancelled.")
        return True
    return bool(result)


def _run_save(session: Any, args: argparse.Namespace) -> bool:
    """Run the save command."""
    if args.name is None:
        return _finish(session.prompt_and_save())
    return _finish(session.save(args.name, args.message or ""))


def _run_list(session: Any, args: argparse.Namespace) -> bool:
    """Run the list command."""
    try:
        entries = session.list_save_points()
    except SavePointError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return False

    if not entries:
        print("No save points.")
        return True

    width = max(len(e.name) for e in entries)
    for entry in entries:
        first_line = entry.message.splitlines()[0] if entry.message else ""
        print(f"  {entry.name:<{width}}  {entry.timestamp}  {first_line}".rstrip())
    return True


def _run_rollback(session: Any, args: argparse.Namespace) -> bool:
    """Run the rollback command."""
    return _finish(session.rollback_to(args.name, confirm=not args.yes))


def _run_undo(session: Any, args: argparse.Namespace) -> bool:
    """Run the undo command."""
    return _finish(session.undo_rollback(confirm=not args.yes))


def _run_delete(session: Any, args: argparse.Namespace) -> bool:
    """Run the delete command."""
    return _finish(session.delete_save_point(args.name, confirm=not args.yes))


def _run_backup(session: Any, args: argparse.Namespace) -> bool:
    """Run the backup command."""
    return _finish(session.backup_project(args.message))


def _run_restore(session: Any, args: argparse.Namespace) -> bool:
    """Run the restore command."""
    return _finish(session.restore_project(confirm=not args.yes))


def _run_info(session: Any, args: argparse.Namespace) -> bool:
    """Run the info command."""
    locations = session.storage_locations()
    print(f"Project:      {locations['project_root']}")
    print(f"Project key:  {locations['project_key']}")
    print(f"Save points:  {locations['save_points']}")
    print(f"Backup:       {locations['backup']}")
    print(f"Encoding:     {locations['encoding']}")
    print()

    record = session.pre_rollback()
    if record is None:
        print("Undo:         nothing to undo")
    else:
        origin = f" (rollback to '{record.origin}')" if record.origin else ""
        print(f"Undo:         available, taken {record.timestamp}{origin}")

    backup = session.backup_info()
    if backup is None:
        print("Last backup:  none")
    else:
        print(f"Last backup:  {backup.timestamp}")
        if backup.message:
            print(f"              {backup.message}")
    return True


if __name__ == "__main__":
    main()
