"""Tests for the command line entry point."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest

from netatmo_mqtt.__main__ import async_main, main
from netatmo_mqtt.config import validate_config


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Restore root logger handlers replaced by setup_logging."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.mark.usefixtures("restore_root_logger")
class TestMain:
    """Tests for main function."""

    def test_missing_config(self, tmp_path: Path) -> None:
        """Test that a missing configuration file exits with an error."""
        assert main(["-c", str(tmp_path / "missing.json")]) == 1

    def test_invalid_config(self, tmp_path: Path) -> None:
        """Test that an invalid configuration file exits with an error."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"client_id": "id"}), encoding="utf-8")
        assert main(["-c", str(path)]) == 1


class TestAsyncMain:
    """Tests for async_main function."""

    @pytest.mark.asyncio
    async def test_exits_without_token(self, tmp_path: Path) -> None:
        """Test that the bridge exits when no token has been saved."""
        config = validate_config(
            {
                "client_id": "id",
                "client_secret": "secret",
                "token_file": str(tmp_path / "token.json"),
            }
        )

        with patch("netatmo_mqtt.__main__.NetatmoMqttPublisher") as mock_publisher:
            assert await async_main(config) == 1

        mock_publisher.return_value.start.assert_not_called()
