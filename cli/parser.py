"""Command parser for CLI input."""

import shlex

from cli.models import (
    AddCommand,
    CommandRequest,
    DeleteCommand,
    ListCommand,
    LoginCommand,
    LogoutCommand,
    StatusCommand,
    SyncCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]
    args = tokens[1:]

    if command_name == "login":
        return _parse_login(args)
    elif command_name == "logout":
        return _parse_no_args(args, "logout", LogoutCommand)
    elif command_name == "add":
        return _parse_add(args)
    elif command_name in ("delete", "rm"):
        return _parse_delete(args)
    elif command_name in ("list", "ls"):
        return _parse_no_args(args, "list", ListCommand)
    elif command_name == "status":
        return _parse_no_args(args, "status", StatusCommand)
    elif command_name == "sync":
        return _parse_no_args(args, "sync", SyncCommand)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_login(args: list[str]) -> LoginCommand:
    """Parse 'login <owner_id>' command."""
    if len(args) != 1:
        raise ParseError("login requires exactly 1 argument: <owner_id>")
    return LoginCommand(owner_id=args[0])


def _parse_add(args: list[str]) -> AddCommand:
    """Parse 'add <url> <title...>' command. Title words are joined."""
    if len(args) < 2:
        raise ParseError("add requires a url and a title")
    return AddCommand(url=args[0], title=" ".join(args[1:]))


def _parse_delete(args: list[str]) -> DeleteCommand:
    """Parse 'delete <index|id>' command."""
    if len(args) != 1:
        raise ParseError("delete requires exactly 1 argument: <index|id>")
    return DeleteCommand(target=args[0])


def _parse_no_args(args: list[str], name: str, command_type):
    if args:
        raise ParseError(f"{name} takes no arguments")
    return command_type()
