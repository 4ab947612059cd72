"""Tests for the CLI search command."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from jobpipe.core.config import DatabaseConfig, Settings
from jobpipe.core.errors import InputError
from jobpipe.core.schemas import AggregationResult
from main import parse_args, run_search


def _settings(tmp_path) -> Settings:  # type: ignore[no-untyped-def]
    return Settings(database=DatabaseConfig(path=str(tmp_path / "cli.db")))


class TestRunSearch:
    async def test_connection_closed_on_error(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        conn = MagicMock()
        aggregator = MagicMock()
        aggregator.aggregate = AsyncMock(side_effect=InputError("boom"))

        with patch("main.init_db", return_value=conn), \
             patch("main.Aggregator", return_value=aggregator):
            with pytest.raises(InputError, match="boom"):
                await run_search(_settings(tmp_path), parse_args(["search", "python"]))

        conn.close.assert_called_once()

    async def test_connection_closed_on_success(self, tmp_path, capsys) -> None:  # type: ignore[no-untyped-def]
        conn = MagicMock()
        aggregator = MagicMock()
        aggregator.aggregate = AsyncMock(return_value=AggregationResult())

        with patch("main.init_db", return_value=conn), \
             patch("main.Aggregator", return_value=aggregator), \
             patch("main.insert_search_run") as record:
            await run_search(_settings(tmp_path), parse_args(["search", "python"]))

        record.assert_called_once()
        conn.close.assert_called_once()
        assert "Aggregated 0 listings" in capsys.readouterr().out
