"""Tests for configuration selection, error types and logging setup."""

import json
import logging

import pytest

from nftstaking.core import config
from nftstaking.core.exceptions import (
    ConfigurationError,
    CorruptedDataError,
    InsufficientFundingError,
    InsufficientStakeError,
    NftStakingError,
    NotOwnerError,
    PausedError,
    StakingError,
    StakingErrorKind,
    StorageError,
    get_error_context,
)
from nftstaking.core.logging_config import StakingJsonFormatter, setup_logging


class TestConfig:

    def test_development_selected_by_default(self):
        assert config.get_config("development") is config.DevelopmentConfig

    def test_production_requires_owner(self, monkeypatch):
        monkeypatch.delenv("NFTSTAKING_POOL_OWNER", raising=False)
        with pytest.raises(ConfigurationError):
            config.get_config("production")

    def test_production_with_owner(self, monkeypatch):
        monkeypatch.setenv("NFTSTAKING_POOL_OWNER", "0x" + "e" * 40)
        selected = config.get_config("PRODUCTION")
        assert selected is config.ProductionConfig
        assert selected.POOL_OWNER == "0x" + "e" * 40

    def test_unknown_network(self):
        with pytest.raises(ConfigurationError):
            config.get_config("staging")

    def test_get_int(self, monkeypatch):
        monkeypatch.setenv("NFTSTAKING_TEST_INT", "42")
        assert config._get_int("NFTSTAKING_TEST_INT", 1) == 42
        monkeypatch.setenv("NFTSTAKING_TEST_INT", "")
        assert config._get_int("NFTSTAKING_TEST_INT", 1) == 1
        monkeypatch.setenv("NFTSTAKING_TEST_INT", "many")
        with pytest.raises(ConfigurationError):
            config._get_int("NFTSTAKING_TEST_INT", 1)


class TestExceptions:

    def test_every_staking_error_kind_is_distinct(self):
        kinds = {member.value for member in StakingErrorKind}
        assert {
            "NOT_OWNER", "PAUSED", "INVALID_COLLECTIBLE", "INSUFFICIENT_STAKE",
            "INSUFFICIENT_FUNDING", "NO_STAKE_RECORD",
        } <= kinds

    def test_hierarchy(self):
        assert issubclass(NotOwnerError, StakingError)
        assert issubclass(StakingError, NftStakingError)
        assert issubclass(CorruptedDataError, StorageError)

    def test_to_dict(self):
        error = InsufficientStakeError(requested=5, available=2)
        assert error.to_dict() == {
            "kind": "INSUFFICIENT_STAKE",
            "message": "InsufficientStake: requested 5, staked 2",
            "details": {"requested": 5, "available": 2},
        }

    def test_recoverable_flags(self):
        assert PausedError("stake").recoverable is True
        assert InsufficientFundingError(0).recoverable is True
        assert NotOwnerError("0xa", "0xb").recoverable is False

    def test_get_error_context(self):
        context = get_error_context(NotOwnerError("0xa", "0xb"))
        assert context["error_type"] == "NotOwnerError"
        assert context["kind"] == "NOT_OWNER"
        assert context["details"] == {"caller": "0xa", "owner": "0xb"}

        plain = get_error_context(ValueError("boom"))
        assert plain == {"error_type": "ValueError", "error_message": "boom"}


class TestLogging:

    def test_formatter_adds_context_fields(self):
        formatter = StakingJsonFormatter(environment="development", service_name="nftstaking")
        record = logging.LogRecord(
            name="nftstaking.test", level=logging.INFO, pathname=__file__, lineno=10,
            msg="Rewards claimed", args=(), exc_info=None, func="claim",
        )
        record.event = "staking.claim"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "Rewards claimed"
        assert payload["event"] == "staking.claim"
        assert payload["environment"] == "development"
        assert payload["service"] == "nftstaking"
        assert payload["level"] == "info"
        assert payload["source"]["function"] == "claim"
        assert payload["timestamp"]

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "staking.json"
        logger = setup_logging(
            name="nftstaking.test_file", log_file=str(log_file), level="DEBUG", enable_console=False
        )
        logger.info("hello", extra={"event": "test.hello"})
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["event"] == "test.hello"

    def test_setup_logging_without_outputs_installs_null_handler(self):
        logger = setup_logging(name="nftstaking.test_quiet", enable_console=False)
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.NullHandler)
