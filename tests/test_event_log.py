from pathlib import Path

from chainledger.ledger.event_log import ChainEventLog, ordering_key


def _event(block: int, log_index: int) -> dict:
    return {
        "eventKind": "Transfer",
        "params": {"from": "0xa", "to": "0xb", "value": "1"},
        "contractAddress": "0xc",
        "block": {"number": block, "timestamp": block * 12, "hash": "0xh"},
        "transaction": {"hash": f"0x{block}"},
        "logIndex": log_index,
    }


def test_append_and_iterate_in_file_order(workspace_tmp_path: Path) -> None:
    event_log = ChainEventLog(workspace_tmp_path / "events" / "events.jsonl")
    for raw in (_event(1, 0), _event(1, 1), _event(2, 0)):
        event_log.append(raw)

    assert [ordering_key(raw) for raw in event_log.iter_events()] == [(1, 0), (1, 1), (2, 0)]
    assert event_log.last_ordering_key() == (2, 0)


def test_iter_events_after_key_skips_processed(workspace_tmp_path: Path) -> None:
    event_log = ChainEventLog(workspace_tmp_path / "events.jsonl")
    for raw in (_event(1, 0), _event(1, 1), _event(2, 0)):
        event_log.append(raw)

    remaining = list(event_log.iter_events(after=(1, 0)))
    assert [ordering_key(raw) for raw in remaining] == [(1, 1), (2, 0)]


def test_missing_or_empty_file(workspace_tmp_path: Path) -> None:
    event_log = ChainEventLog(workspace_tmp_path / "missing.jsonl")
    assert list(event_log.iter_events()) == []
    assert event_log.last_ordering_key() is None

    event_log.events_file.write_bytes(b"")
    assert event_log.last_ordering_key() is None


def test_blank_lines_are_skipped(workspace_tmp_path: Path) -> None:
    path = workspace_tmp_path / "events.jsonl"
    event_log = ChainEventLog(path)
    event_log.append(_event(3, 4))
    with open(path, "ab") as handle:
        handle.write(b"\n")

    assert len(list(event_log.iter_events())) == 1
    assert event_log.last_ordering_key() == (3, 4)
