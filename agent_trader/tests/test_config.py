"""
Configuration tests.
"""
import os
from unittest.mock import patch

import pytest

from agent_trader.config import EngineConfig, TickerSelection, load_config


class TestLoadConfig:

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = load_config()

        assert cfg.database_url == "sqlite:///./agent_trader.db"
        assert cfg.max_concurrency == 4
        assert cfg.per_agent_timeout_seconds == 20.0
        assert cfg.ticker_selection == TickerSelection.ROUND_ROBIN
        assert cfg.ticker_seed is None
        assert cfg.recompute_performance is True
        assert cfg.loop_seconds == 300

    def test_environment_overrides(self):
        env = {
            "MAX_CONCURRENCY": "8",
            "TICKER_SELECTION": "RANDOM",
            "TICKER_SEED": "42",
            "PERFORMANCE_SEED": "7",
            "RECOMPUTE_PERFORMANCE": "false",
            "JOURNAL_ENABLED": "false",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.max_concurrency == 8
        assert cfg.ticker_selection == TickerSelection.RANDOM
        assert cfg.ticker_seed == 42
        assert cfg.performance_seed == 7
        assert cfg.recompute_performance is False
        assert cfg.journal_enabled is False
        assert cfg.log_level == "DEBUG"

    def test_invalid_selection_falls_back(self):
        with patch.dict(os.environ, {"TICKER_SELECTION": "lottery"}, clear=True):
            assert load_config().ticker_selection == TickerSelection.ROUND_ROBIN


class TestValidation:

    @pytest.mark.parametrize("field,value", [
        ("max_concurrency", 0),
        ("per_agent_timeout_seconds", 0),
        ("loop_seconds", -1),
        ("quote_max_attempts", 0),
    ])
    def test_rejects_unusable_settings(self, field, value):
        with pytest.raises(ValueError):
            EngineConfig(**{field: value})

    def test_invalid_env_raises(self):
        with patch.dict(os.environ, {"MAX_CONCURRENCY": "0"}, clear=True):
            with pytest.raises(ValueError, match="MAX_CONCURRENCY"):
                load_config()
