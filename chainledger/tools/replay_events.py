"""CLI to replay a JSONL chain event log through the ledgers.

Usage:
    python -m chainledger.tools.replay_events \
        --config ./config.yaml \
        --events ./data/events/events.jsonl \
        --output ./data/state/entities.json

Events must already be in (block number, log index) order. The resulting
positions, prices, snapshots, stake records, staking log and reward states are
written to the output file as JSON together with the key of the last applied
event. With --resume an existing output file is loaded and only events after
that key are applied.
"""

from __future__ import annotations

import argparse
from pathlib import Path

import structlog
from prometheus_client import CollectorRegistry

from chainledger.config.settings import create_default_config, load_settings
from chainledger.ledger import ChainEventLog, EventProcessor, InMemoryEntityStore
from chainledger.monitoring import Metrics, configure_logging

log = structlog.get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay ordered chain events and dump the resulting ledger entities."
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--events", default=None, help="JSONL event log (overrides config)")
    parser.add_argument("--output", default=None, help="Entity dump path (overrides config)")
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a default config.yaml to --config (or ./config.yaml) and exit",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Continue from the checkpoint stored in an existing output file",
    )
    args = parser.parse_args(argv)

    if args.init_config:
        target = Path(args.config or "config.yaml")
        create_default_config(target)
        print(f"Wrote default config to {target}")
        return 0

    settings = load_settings(args.config)
    configure_logging(
        settings.monitoring.log_level,
        settings.storage.logs_path,
        settings.monitoring,
        chain_id=settings.chain_id,
    )

    events_path = Path(args.events or settings.storage.events_path)
    output_path = Path(args.output or settings.storage.output_path)
    if not events_path.exists():
        log.error("events_file_missing", path=str(events_path))
        print(f"Event log not found: {events_path}")
        return 1

    event_log = ChainEventLog(events_path)
    store = InMemoryEntityStore()
    checkpoint = None
    if args.resume and output_path.exists():
        store, checkpoint = InMemoryEntityStore.load(output_path)
        tail = event_log.last_ordering_key()
        log.info("replay_resumed", checkpoint=checkpoint, log_tail=tail)
        if checkpoint is not None and tail is not None and tail <= checkpoint:
            print(f"Already up to date at block {checkpoint[0]}, log index {checkpoint[1]}")
            return 0

    metrics = Metrics(registry=CollectorRegistry())
    processor = EventProcessor.from_settings(settings, store, metrics=metrics)
    if checkpoint is not None:
        processor.resume_after(checkpoint)
    stats = processor.replay(event_log.iter_events(after=checkpoint))
    store.dump(output_path, checkpoint=processor.last_ordering_key)

    log.info("replay_complete", output=str(output_path), **stats.to_dict())
    print(
        f"Applied {stats.applied} events ({stats.ignored} ignored, "
        f"{stats.violations} skipped updates). Entities written to {output_path}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
