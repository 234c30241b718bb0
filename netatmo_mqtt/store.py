"""Token persistence for the Netatmo MQTT bridge."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from .const import TOKEN_ACCESS_TOKEN, TOKEN_EXPIRES_TS, TOKEN_REFRESH_TOKEN
from .models import Token

_LOGGER = logging.getLogger(__name__)


class TokenStore(Protocol):
    """Storage for the last known token."""

    def load(self) -> Token | None:
        """Return the saved token, or None if there is none."""

    def update(self, token: Token) -> None:
        """Persist a newly obtained token."""


class JsonTokenStore:
    """Keeps the token in a JSON file next to the configuration."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Token | None:
        if not self.path.exists():
            _LOGGER.info("No saved token found at %s", self.path)
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return Token(
                access_token=data.get(TOKEN_ACCESS_TOKEN),
                refresh_token=data.get(TOKEN_REFRESH_TOKEN),
                expires_at=int(data.get(TOKEN_EXPIRES_TS) or 0),
            )
        except (OSError, ValueError, TypeError, AttributeError) as err:
            _LOGGER.warning("Saved token at %s could not be read: %s", self.path, err)
            return None

    def update(self, token: Token) -> None:
        """Write the token atomically, replacing the previous file."""
        data = {
            TOKEN_ACCESS_TOKEN: token.access_token,
            TOKEN_REFRESH_TOKEN: token.refresh_token,
            TOKEN_EXPIRES_TS: token.expires_at,
        }
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        temp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        temp_path.replace(self.path)
        _LOGGER.debug("Saved token to %s", self.path)
