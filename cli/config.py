"""Configuration management for the Markd CLI."""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Tuple

from common.constants import (
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    MAX_RECONNECT_DELAY_SECONDS,
    RECONCILE_INTERVAL_SECONDS,
    RECONNECT_DELAY_SECONDS,
)
from common.logging_config import get_logger

logger = get_logger(__name__)


class Config:
    """Manages CLI configuration stored in a JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("MARKD_SERVER_HOST", DEFAULT_SERVER_HOST),
        "server_port": int(os.environ.get("MARKD_SERVER_PORT", str(DEFAULT_SERVER_PORT))),
        "timeout": 30,
        "reconnect_delay": RECONNECT_DELAY_SECONDS,
        "max_reconnect_delay": MAX_RECONNECT_DELAY_SECONDS,
        "reconcile_interval": RECONCILE_INTERVAL_SECONDS,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.markd/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        A corrupted file is backed up to config.json.bak and defaults are used.
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.markd' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Config file {self.config_path} unreadable, using defaults: {e}")
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except IOError as copy_error:
                    logger.warning(f"Could not back up config: {copy_error}")
                return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        try:
            with open(self.config_path, 'w') as f:
                json.dump(config, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not write default config: {e}")
        return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config: {e}")

    def get_session(self) -> Optional[Tuple[str, str]]:
        """
        Get the stored session.

        Returns:
            (owner_id, session_key) or None if not logged in
        """
        owner_id = self.data.get('owner_id')
        session_key = self.data.get('session_key')
        if not owner_id or not session_key:
            return None
        return owner_id, session_key

    def set_session(self, owner_id: str, session_key: str) -> None:
        self.data['owner_id'] = owner_id
        self.data['session_key'] = session_key
        self.save()

    def clear_session(self) -> None:
        self.data.pop('owner_id', None)
        self.data.pop('session_key', None)
        self.save()

    def set_server(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        if host:
            self.data['server_host'] = host
        if port:
            self.data['server_port'] = port
        self.save()

    def get_base_url(self) -> str:
        """
        Get server base URL.

        Returns:
            Base URL string (e.g., "http://localhost:8000")
        """
        host = self.data.get('server_host', DEFAULT_SERVER_HOST)
        port = self.data.get('server_port', DEFAULT_SERVER_PORT)
        return f"http://{host}:{port}"

    def get_timeout(self) -> float:
        return float(self.data.get('timeout', 30))

    def get_reconnect_config(self) -> dict:
        """
        Get channel reconnect configuration.

        Returns:
            Dictionary with 'reconnect_delay' and 'max_reconnect_delay'
        """
        return {
            'reconnect_delay': float(self.data.get('reconnect_delay', RECONNECT_DELAY_SECONDS)),
            'max_reconnect_delay': float(self.data.get('max_reconnect_delay', MAX_RECONNECT_DELAY_SECONDS)),
        }

    def get_reconcile_interval(self) -> float:
        return float(self.data.get('reconcile_interval', RECONCILE_INTERVAL_SECONDS))
