"""Configuration settings for the bookmark server."""

import os

from common.constants import DEFAULT_SERVER_PORT, SESSION_KEY_PREFIX


DATABASE_PATH = os.environ.get("MARKD_DATABASE_PATH", "/app/data/markd.db")

SERVER_HOST = os.environ.get("MARKD_SERVER_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("MARKD_SERVER_PORT", str(DEFAULT_SERVER_PORT)))

SESSION_PREFIX = SESSION_KEY_PREFIX

MAX_TITLE_LENGTH = 500
MAX_URL_LENGTH = 2048
