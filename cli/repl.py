"""REPL with prompt_toolkit for user interaction."""

import os
import sys
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from common.logging_config import get_logger
from cli.commands import (
    get_client,
    handle_add,
    handle_delete,
    handle_list,
    handle_login,
    handle_logout,
    handle_status,
    handle_sync,
)
from cli.constants import (
    COMMANDS,
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import (
    AddCommand,
    DeleteCommand,
    ListCommand,
    LoginCommand,
    LogoutCommand,
    StatusCommand,
    SyncCommand,
)
from cli.parser import ParseError, parse_command
from replica.exceptions import ReplicaError

logger = get_logger(__name__)


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_welcome() -> None:
    print(LOGO)
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


async def dispatch_command(cmd_obj) -> str:
    """Dispatch parsed command to appropriate handler."""
    if isinstance(cmd_obj, LoginCommand):
        return await handle_login(cmd_obj)
    elif isinstance(cmd_obj, LogoutCommand):
        return await handle_logout(cmd_obj)
    elif isinstance(cmd_obj, AddCommand):
        return await handle_add(cmd_obj)
    elif isinstance(cmd_obj, DeleteCommand):
        return await handle_delete(cmd_obj)
    elif isinstance(cmd_obj, ListCommand):
        return await handle_list(cmd_obj)
    elif isinstance(cmd_obj, StatusCommand):
        return await handle_status(cmd_obj)
    elif isinstance(cmd_obj, SyncCommand):
        return await handle_sync(cmd_obj)
    else:
        return f"Unknown command type: {type(cmd_obj)}"


async def repl_loop() -> None:
    """Start interactive REPL with prompt_toolkit.

    Output is routed through patch_stdout so remote changes printed by the
    replica listener do not corrupt the prompt line.
    """
    completer = WordCompleter(COMMANDS, ignore_case=True)
    history = InMemoryHistory()
    session: PromptSession = PromptSession(
        completer=completer, history=history, style=STYLE
    )

    clear_screen()
    show_welcome()

    client = get_client()
    try:
        resumed = await client.resume()
        if resumed:
            print(resumed)
    except ReplicaError as e:
        print(f"Error: could not resume session: {e}")

    try:
        with patch_stdout():
            while True:
                try:
                    user_input = await session.prompt_async([("class:prompt", PROMPT_TEXT)])

                    if not user_input.strip():
                        continue

                    if user_input.strip() == "exit":
                        print("Goodbye!")
                        break

                    if user_input.strip() == "help":
                        print(HELP_TEXT)
                        continue

                    if user_input.strip() == "clear":
                        clear_screen()
                        show_welcome()
                        continue

                    cmd_obj = parse_command(user_input)
                    result = await dispatch_command(cmd_obj)
                    print(result)

                except ParseError as e:
                    print(f"Error: {e}")
                except ReplicaError as e:
                    logger.error(f"Command failed: {e}")
                    print(f"Error: {e}")
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    print("\nGoodbye!")
                    break
    finally:
        await client.close()
