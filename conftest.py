"""Root conftest: chat_sync.config.settings is rebuilt from .env.test before
any test module imports the client."""
from __future__ import annotations

from pathlib import Path

from chat_sync import config

ENV_TEST = Path(__file__).resolve().parent / ".env.test"

config.settings = config.Settings(_env_file=ENV_TEST if ENV_TEST.exists() else None)
