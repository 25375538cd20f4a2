#!/usr/bin/env python3
"""Run a marketplace simulation and publish its event log.

Seeds an exchange with participants and properties, drives random trading
rounds, and exports the events to:
- Console (--console)
- JSON Lines files plus property/participant snapshots (--output)
- Kafka topics <topic-prefix>.<entity> (--kafka)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from prop_exchange.config import ExchangeConfig, MarketConfig, SimulationConfig
from prop_exchange.env.payments import to_money
from prop_exchange.exceptions import ConfigurationError, SinkError, ValidationError
from prop_exchange.logging import setup_logging
from prop_exchange.scenarios import MarketplaceScenario
from prop_exchange.sinks import ConsoleSink, JsonFileSink

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> ExchangeConfig:
    """Merge CLI flags over environment configuration."""
    config = ExchangeConfig.from_env()
    config.seed = args.seed
    config.log_level = args.log_level
    if args.fee is not None:
        config.market = MarketConfig(
            flat_fee=to_money(args.fee),
            deal_window_seconds=config.market.deal_window_seconds,
            fee_account=config.market.fee_account,
        )
    if args.topic_prefix:
        config.output.topic_prefix = args.topic_prefix
    config.simulation = SimulationConfig(
        name="marketplace",
        num_participants=args.participants,
        num_properties=args.properties,
        trading_rounds=args.rounds,
        rejection_rate=args.rejection_rate,
        expiry_rate=args.expiry_rate,
    )
    return config.validate()


def build_sinks(args: argparse.Namespace, config: ExchangeConfig) -> list:
    sinks: list = []
    if args.console:
        sinks.append(ConsoleSink(pretty=False, max_records=args.max_console_records))
    if args.output:
        sinks.append(JsonFileSink(args.output, pretty=config.output.pretty_json))
    if args.kafka:
        from prop_exchange.sinks.kafka import KafkaSink, ProducerConfig

        sinks.append(
            KafkaSink(
                ProducerConfig(
                    bootstrap_servers=args.kafka,
                    schema_registry_url=args.schema_registry,
                    acks=config.kafka.acks,
                )
            )
        )
    return sinks


def main() -> None:
    """Parse arguments, run the scenario, export events."""
    parser = argparse.ArgumentParser(description="Simulate fractional property trading")
    parser.add_argument("--participants", type=int, default=10, help="Approved participants (default: 10)")
    parser.add_argument("--properties", type=int, default=5, help="Properties to register (default: 5)")
    parser.add_argument("--rounds", type=int, default=20, help="Trading rounds (default: 20)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--rejection-rate", type=float, default=0.1, help="Share of registrations rejected once (default: 0.1)"
    )
    parser.add_argument(
        "--expiry-rate", type=float, default=0.1, help="Share of accepted deals left to expire (default: 0.1)"
    )
    parser.add_argument("--fee", type=str, default=None, help="Flat marketplace fee (default: from env or 0.01)")
    parser.add_argument("--topic-prefix", type=str, default=None, help="Event topic prefix")
    parser.add_argument("--log-level", type=str, default="INFO", help="Log level (default: INFO)")

    output_group = parser.add_argument_group("outputs")
    output_group.add_argument("--console", action="store_true", help="Print events to stdout")
    output_group.add_argument(
        "--max-console-records", type=int, default=None, help="Limit printed events per topic"
    )
    output_group.add_argument("--output", type=Path, default=None, help="Directory for JSON output")
    output_group.add_argument("--kafka", type=str, default=None, help="Kafka bootstrap servers")
    output_group.add_argument(
        "--schema-registry", type=str, default=None, help="Schema Registry URL for Avro events"
    )
    args = parser.parse_args()

    try:
        config = build_config(args)
    except (ConfigurationError, ValidationError) as e:
        parser.error(str(e))

    setup_logging(level=config.log_level)

    scenario = MarketplaceScenario.from_config(config.simulation, config)
    exchange = scenario.generate()

    sinks = build_sinks(args, config)
    try:
        published = scenario.export(sinks)
    except SinkError:
        logger.exception("Export failed")
        sys.exit(1)
    finally:
        for sink in sinks:
            sink.close()

    print("=" * 60)
    print("Simulation Summary")
    print("=" * 60)
    for name, value in {**scenario.stats, **exchange.market.summary()}.items():
        print(f"{name + ':':18}{value}")
    print(f"{'events:':18}{published}")


if __name__ == "__main__":
    main()
