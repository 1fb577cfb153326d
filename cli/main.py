"""CLI entry point."""

import argparse
import asyncio
import os
from pathlib import Path
from typing import List, Optional

from common.logging_config import setup_logging
from cli.bookmark_client import BookmarkClient
from cli.commands import DEFAULT_CONFIG_PATH, set_client
from cli.config import Config
from cli.repl import repl_loop


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="markd", description="Markd bookmark REPL")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to config.json")
    parser.add_argument("--host", help="Server host (saved to the config)")
    parser.add_argument("--port", type=int, help="Server port (saved to the config)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for CLI."""
    args = parse_args(argv)

    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('cli', log_level=log_level)

    config = Config(Path(args.config).expanduser())
    if args.host or args.port:
        config.set_server(args.host, args.port)
    set_client(BookmarkClient(config))

    logger.info(f"CLI starting [server={config.get_base_url()}]")
    try:
        asyncio.run(repl_loop())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()
