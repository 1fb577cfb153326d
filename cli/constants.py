"""CLI constants."""

from prompt_toolkit.styles import Style

COMMANDS = ["login", "logout", "add", "delete", "list", "status", "sync", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#E8590C bold",
        "command": "#0088ff bold",
    }
)

ACCENT = "\033[38;2;232;89;12m"
GREEN = "\033[32m"
DIM = "\033[2m"
RESET = "\033[0m"

LOGO = f"""{ACCENT}
 ███╗   ███╗ █████╗ ██████╗ ██╗  ██╗██████╗
 ████╗ ████║██╔══██╗██╔══██╗██║ ██╔╝██╔══██╗
 ██╔████╔██║███████║██████╔╝█████╔╝ ██║  ██║
 ██║╚██╔╝██║██╔══██║██╔══██╗██╔═██╗ ██║  ██║
 ██║ ╚═╝ ██║██║  ██║██║  ██║██║  ██╗██████╔╝
 ╚═╝     ╚═╝╚═╝  ╚═╝╚═╝  ╚═╝╚═╝  ╚═╝╚═════╝
{RESET}"""

WELCOME_TITLE = "Markd - bookmarks in sync across every open session"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "markd> "

HELP_TEXT = """Available commands:
  login <owner_id>          Open a session and start syncing
  logout                    Close the session and drop the local copy
  add <url> <title...>      Save a bookmark (https:// is added when missing)
  delete <index|id>         Delete a bookmark by list position or id (alias: rm)
  list                      Show bookmarks, newest first (alias: ls)
  status                    Show owner and realtime connection status
  sync                      Re-read bookmarks from the server
  clear                     Clear screen and redisplay welcome message
  help                      Show this help
  exit                      Exit REPL

Examples:
  login alice
  add example.com Example Domain
  list
  delete 1"""

NOT_LOGGED_IN = "Not logged in. Use 'login <owner_id>' first."
