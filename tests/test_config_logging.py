"""Tests for config and logging."""

import json
import logging
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

import pytest

import prop_exchange
from conftest import USER1
from prop_exchange.config import (
    ExchangeConfig,
    KafkaConfig,
    LedgerConfig,
    MarketConfig,
    OutputConfig,
    SimulationConfig,
)
from prop_exchange.exceptions import ConfigurationError
from prop_exchange.logging import ContextFormatter, JsonFormatter, event_context, setup_logging
from prop_exchange.market.escrow import EscrowMarketplace
from prop_exchange.store.ledger import PropertyLedger

ENV_VARS = [
    "TOTAL_SHARES",
    "MARKET_FLAT_FEE",
    "DEAL_WINDOW_SECONDS",
    "FEE_ACCOUNT",
    "SEED",
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_ACKS",
    "OUTPUT_DIR",
    "PRETTY_JSON",
    "TOPIC_PREFIX",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment without any prop-exchange settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestKafkaConfig:
    """Tests for KafkaConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = KafkaConfig()

        assert config.bootstrap_servers == "localhost:9092"
        assert config.acks == "all"
        assert config.compression == "snappy"

    def test_to_dict(self) -> None:
        """Test conversion to confluent-kafka config dict."""
        result = KafkaConfig(bootstrap_servers="kafka:9092", acks="1").to_dict()

        assert result["bootstrap.servers"] == "kafka:9092"
        assert result["acks"] == "1"
        assert result["batch.size"] == 16384
        assert result["linger.ms"] == 5
        assert result["compression.type"] == "snappy"
        assert result["retries"] == 3


class TestMarketConfig:
    """Tests for LedgerConfig and MarketConfig."""

    def test_default_values(self) -> None:
        """Test default ledger and market values."""
        assert LedgerConfig().total_shares == 1000

        market = MarketConfig()
        assert market.flat_fee == Decimal("0.01")
        assert market.fee_account == "marketplace"
        assert market.deal_window == timedelta(days=7)

    def test_deal_window_from_seconds(self) -> None:
        """Test deal_window property."""
        assert MarketConfig(deal_window_seconds=90).deal_window == timedelta(seconds=90)


class TestExchangeConfig:
    """Tests for ExchangeConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = ExchangeConfig()

        assert isinstance(config.ledger, LedgerConfig)
        assert isinstance(config.market, MarketConfig)
        assert isinstance(config.kafka, KafkaConfig)
        assert isinstance(config.output, OutputConfig)
        assert config.output.json_output_dir == Path("output")
        assert config.output.topic_prefix == "dev.exchange"
        assert config.simulation is None
        assert config.seed is None
        assert config.log_level == "INFO"

    def test_validate_returns_self(self) -> None:
        config = ExchangeConfig()
        assert config.validate() is config

    @pytest.mark.parametrize(
        "config",
        [
            ExchangeConfig(ledger=LedgerConfig(total_shares=0)),
            ExchangeConfig(market=MarketConfig(flat_fee=Decimal("-0.01"))),
            ExchangeConfig(market=MarketConfig(flat_fee=Decimal("NaN"))),
            ExchangeConfig(market=MarketConfig(flat_fee=Decimal("Infinity"))),
            ExchangeConfig(market=MarketConfig(deal_window_seconds=0)),
            ExchangeConfig(market=MarketConfig(fee_account="")),
        ],
    )
    def test_validate_rejects(self, config: ExchangeConfig) -> None:
        """Test out-of-range values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_zero_fee_is_valid(self) -> None:
        ExchangeConfig(market=MarketConfig(flat_fee=Decimal("0"))).validate()

    def test_from_env_default(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test creating config from environment with defaults."""
        config = ExchangeConfig.from_env()

        assert config.ledger.total_shares == 1000
        assert config.market.flat_fee == Decimal("0.01")
        assert config.market.deal_window_seconds == 604800
        assert config.kafka.bootstrap_servers == "localhost:9092"
        assert config.output.pretty_json is False
        assert config.seed is None
        assert config.log_level == "INFO"

    def test_from_env_custom(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test creating config from custom environment variables."""
        env_vars = {
            "TOTAL_SHARES": "10000",
            "MARKET_FLAT_FEE": "0.5",
            "DEAL_WINDOW_SECONDS": "3600",
            "FEE_ACCOUNT": "0xtreasury",
            "SEED": "12345",
            "KAFKA_BOOTSTRAP_SERVERS": "kafka-cluster:9092",
            "KAFKA_ACKS": "1",
            "OUTPUT_DIR": "/data/output",
            "PRETTY_JSON": "true",
            "TOPIC_PREFIX": "prod.exchange",
            "LOG_LEVEL": "DEBUG",
        }
        for name, value in env_vars.items():
            clean_env.setenv(name, value)

        config = ExchangeConfig.from_env()

        assert config.ledger.total_shares == 10000
        assert config.market.flat_fee == Decimal("0.5")
        assert config.market.deal_window == timedelta(hours=1)
        assert config.market.fee_account == "0xtreasury"
        assert config.seed == 12345
        assert config.kafka.bootstrap_servers == "kafka-cluster:9092"
        assert config.kafka.acks == "1"
        assert config.output.json_output_dir == Path("/data/output")
        assert config.output.pretty_json is True
        assert config.output.topic_prefix == "prod.exchange"
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "name,value",
        [("TOTAL_SHARES", "many"), ("MARKET_FLAT_FEE", "cheap"), ("SEED", "x"), ("TOTAL_SHARES", "-5"), ("MARKET_FLAT_FEE", "NaN")],
    )
    def test_from_env_invalid(self, clean_env: pytest.MonkeyPatch, name: str, value: str) -> None:
        """Test malformed or out-of-range environment values."""
        clean_env.setenv(name, value)

        with pytest.raises(ConfigurationError):
            ExchangeConfig.from_env()


class TestSimulationConfig:
    """Tests for SimulationConfig."""

    def test_default_values(self) -> None:
        config = SimulationConfig(name="marketplace")

        assert config.num_participants == 10
        assert config.num_properties == 5
        assert config.trading_rounds == 20
        assert config.initial_funds == Decimal("1000")
        assert config.labels == {}

    def test_exchange_config_with_simulation(self) -> None:
        config = ExchangeConfig(simulation=SimulationConfig(name="busy", trading_rounds=200))

        assert config.simulation is not None
        assert config.simulation.trading_rounds == 200


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default(self) -> None:
        """Test default logging setup."""
        setup_logging()

        assert logging.getLogger("prop_exchange").level == logging.INFO

    def test_setup_logging_debug(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("prop_exchange").level == logging.DEBUG

    def test_setup_logging_invalid_level(self) -> None:
        """Test logging with invalid level defaults to INFO."""
        setup_logging(level="INVALID")

        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_replaces_handlers(self) -> None:
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_setup_logging_json_format(self) -> None:
        setup_logging(format_type="json")

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)

    def test_library_loggers_quieted(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger("confluent_kafka").level == logging.WARNING
        assert logging.getLogger("faker").level == logging.WARNING


def _record(exc_info=None, **context) -> logging.LogRecord:
    record = logging.LogRecord(
        name="prop_exchange.market.escrow",
        level=logging.INFO,
        pathname="escrow.py",
        lineno=1,
        msg="Listed %d shares",
        args=(500,),
        exc_info=exc_info,
    )
    record.__dict__.update(context)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_format_basic(self) -> None:
        data = json.loads(JsonFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "prop_exchange.market.escrow"
        assert data["message"] == "Listed 500 shares"
        assert "timestamp" in data
        assert "context" not in data

    def test_format_with_context(self) -> None:
        record = _record(property_id=7, seller="0xseller", price=Decimal("10"), unrelated="x")

        data = json.loads(JsonFormatter().format(record))

        assert data["context"] == {"property_id": 7, "seller": "0xseller", "price": "10"}

    def test_format_with_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            record = _record(exc_info=sys.exc_info())

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in data["exception"]


class TestContextFormatter:
    """Tests for the standard text format."""

    def test_appends_context(self) -> None:
        line = ContextFormatter().format(_record(property_id=7, seller="0xseller"))

        assert line.endswith("Listed 500 shares [property_id=7 seller=0xseller]")

    def test_plain_without_context(self) -> None:
        line = ContextFormatter().format(_record())

        assert line.endswith("| prop_exchange.market.escrow | Listed 500 shares")

    def test_setup_uses_context_formatter(self) -> None:
        setup_logging()

        assert isinstance(logging.getLogger().handlers[0].formatter, ContextFormatter)


class TestExchangeContext:
    """Tests for context attached by the ledger, marketplace and emitter."""

    def test_event_context(self) -> None:
        context = event_context(
            "offer.sent",
            "0:0xseller",
            {"seller": "0xseller", "buyer": "0xbuyer", "price": Decimal("11"), "note": "x"},
        )

        assert context == {
            "event_type": "offer.sent",
            "subject": "0:0xseller",
            "seller": "0xseller",
            "buyer": "0xbuyer",
            "price": Decimal("11"),
        }

    def test_marketplace_logs_listing_context(
        self, caplog: pytest.LogCaptureFixture, market: EscrowMarketplace, property_id: int
    ) -> None:
        caplog.set_level(logging.INFO, logger="prop_exchange")

        market.list_property(USER1, property_id, Decimal("10"), 500)

        record = next(r for r in caplog.records if r.getMessage().startswith("Listed"))
        assert record.property_id == property_id
        assert record.seller == USER1

    def test_emitter_logs_event_context(
        self, caplog: pytest.LogCaptureFixture, ledger: PropertyLedger
    ) -> None:
        caplog.set_level(logging.DEBUG, logger="prop_exchange")

        pid = ledger.register_property(USER1, "573821", "Somewhere", [USER1], [1000])

        record = next(r for r in caplog.records if getattr(r, "event_type", None) == "property.registered")
        assert record.property_id == pid
        assert record.subject == str(pid)


def test_version() -> None:
    assert prop_exchange.__version__ == "0.1.0"
