"""JSON file sink for exporting events and ledger snapshots."""

import json
from pathlib import Path
from typing import Any

from prop_exchange.sinks.serialization import to_dict, to_json


class JsonFileSink:
    """Append events to JSON Lines files and write snapshots as JSON arrays.

    Each topic gets its own ``<topic>.jsonl`` file (dots replaced by
    underscores); repeated batches append to it.
    """

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files.
        pretty : bool
            Pretty-print snapshot files.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def path_for(self, topic: str) -> Path:
        return self.output_dir / (topic.replace(".", "_") + ".jsonl")

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Append a batch of records to the topic's JSON Lines file."""
        with open(self.path_for(topic), "a", encoding="utf-8") as f:
            for record in records:
                f.write(to_json(record) + "\n")
        self._counts[topic] = self._counts.get(topic, 0) + len(records)

    def send(self, topic: str, record: Any) -> None:
        """Append a single record."""
        self.write_batch(topic, [record])

    def write_snapshot(self, name: str, records: list[Any]) -> Path:
        """Write ``records`` as a JSON array to ``<name>.json``, replacing it."""
        file_path = self.output_dir / f"{name}.json"
        data = [to_dict(record) for record in records]

        with open(file_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            else:
                json.dump(data, f, ensure_ascii=False, default=str)

        self._counts[name] = len(records)
        return file_path

    def close(self) -> None:
        """Print summary."""
        print(f"JSON files written to: {self.output_dir}")
        for name, count in self._counts.items():
            print(f"  {name}: {count} records")
