"""Configuration management for prop-exchange."""

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from prop_exchange.exceptions import ConfigurationError

DEFAULT_TOTAL_SHARES = 1000
DEFAULT_DEAL_WINDOW_SECONDS = 7 * 24 * 3600


@dataclass
class LedgerConfig:
    """Property ledger configuration."""

    total_shares: int = DEFAULT_TOTAL_SHARES


@dataclass
class MarketConfig:
    """Escrow marketplace configuration.

    The fee is a flat amount deducted from every settlement regardless of
    trade size, paid into ``fee_account``.
    """

    flat_fee: Decimal = Decimal("0.01")
    deal_window_seconds: int = DEFAULT_DEAL_WINDOW_SECONDS
    fee_account: str = "marketplace"

    @property
    def deal_window(self) -> timedelta:
        """Time a buyer has to settle once an offer is accepted."""
        return timedelta(seconds=self.deal_window_seconds)


@dataclass
class KafkaConfig:
    """Kafka producer configuration for the event stream."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False
    topic_prefix: str = "dev.exchange"


@dataclass
class SimulationConfig:
    """Configuration for a marketplace simulation run."""

    name: str
    num_participants: int = 10
    num_properties: int = 5
    trading_rounds: int = 20
    rejection_rate: float = 0.1
    expiry_rate: float = 0.1
    initial_funds: Decimal = Decimal("1000")
    labels: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExchangeConfig:
    """Main configuration for prop-exchange."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    simulation: SimulationConfig | None = None
    seed: int | None = None
    log_level: str = "INFO"

    def validate(self) -> "ExchangeConfig":
        """Check values that would break ledger or settlement arithmetic.

        Raises
        ------
        ConfigurationError
            If any value is out of range.
        """
        if self.ledger.total_shares <= 0:
            raise ConfigurationError(
                f"total_shares must be positive, got {self.ledger.total_shares}"
            )
        fee = self.market.flat_fee
        if not fee.is_finite() or fee < 0:
            raise ConfigurationError(f"flat_fee must be a finite non-negative amount, got {fee}")
        if self.market.deal_window_seconds <= 0:
            raise ConfigurationError(
                f"deal_window_seconds must be positive, got {self.market.deal_window_seconds}"
            )
        if not self.market.fee_account:
            raise ConfigurationError("fee_account must not be empty")
        return self

    @classmethod
    def from_env(cls) -> "ExchangeConfig":
        """Create config from environment variables."""
        import os

        try:
            ledger = LedgerConfig(
                total_shares=int(os.getenv("TOTAL_SHARES", str(DEFAULT_TOTAL_SHARES))),
            )
            market = MarketConfig(
                flat_fee=Decimal(os.getenv("MARKET_FLAT_FEE", "0.01")),
                deal_window_seconds=int(
                    os.getenv("DEAL_WINDOW_SECONDS", str(DEFAULT_DEAL_WINDOW_SECONDS))
                ),
                fee_account=os.getenv("FEE_ACCOUNT", "marketplace"),
            )
            seed = int(os.getenv("SEED")) if os.getenv("SEED") else None
        except (ValueError, InvalidOperation) as e:
            raise ConfigurationError(f"Invalid numeric setting in environment: {e}") from e

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
            topic_prefix=os.getenv("TOPIC_PREFIX", "dev.exchange"),
        )

        return cls(
            ledger=ledger,
            market=market,
            kafka=kafka,
            output=output,
            seed=seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        ).validate()
