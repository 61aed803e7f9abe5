from pathlib import Path

import orjson
import pytest
import yaml

from chainledger.ledger.event_log import ChainEventLog
from chainledger.tools.replay_events import main


def _staked(owner: str, unit: int, timestamp: int, block: int) -> dict:
    return {
        "eventKind": "Staked",
        "params": {"owner": owner, "tokenId": unit, "timestamp": timestamp},
        "contractAddress": "0xstaking",
        "block": {"number": block, "timestamp": timestamp, "hash": "0xh"},
        "transaction": {"hash": f"0x{block}"},
        "logIndex": 0,
    }


def _write_config(root: Path) -> Path:
    config = root / "config.yaml"
    config.write_text(
        yaml.dump(
            {
                "storage": {
                    "events_path": str(root / "events.jsonl"),
                    "output_path": str(root / "out" / "entities.json"),
                    "logs_path": str(root / "logs"),
                },
                "monitoring": {"log_level": "WARNING"},
            }
        )
    )
    return config


@pytest.mark.usefixtures("reset_logging")
def test_replay_writes_entity_dump(
    workspace_tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = _write_config(workspace_tmp_path)
    event_log = ChainEventLog(workspace_tmp_path / "events.jsonl")
    event_log.append(_staked("0xA", 1, 0, 1))
    event_log.append(_staked("0xa", 2, 100, 2))

    assert main(["--config", str(config)]) == 0

    data = orjson.loads((workspace_tmp_path / "out" / "entities.json").read_bytes())
    assert data["checkpoint"] == [2, 0]
    entities = data["entities"]
    assert [row["id"] for row in entities["StakeRecord"]] == ["1", "2"]
    state = entities["RewardState"][0]
    assert state["account"] == "0xa"
    assert state["points_at_last_update"] == "20"
    assert state["active_unit_count"] == 2
    assert "Applied 2 events" in capsys.readouterr().out


@pytest.mark.usefixtures("reset_logging")
def test_missing_events_file_fails(workspace_tmp_path: Path) -> None:
    config = _write_config(workspace_tmp_path)
    assert main(["--config", str(config)]) == 1

    lines = (workspace_tmp_path / "logs" / "errors.log").read_text().splitlines()
    record = orjson.loads(lines[-1])
    assert record["event"] == "events_file_missing"
    assert record["level"] == "error"
    assert record["chain_id"] == 1


def test_init_config_writes_defaults(workspace_tmp_path: Path) -> None:
    target = workspace_tmp_path / "config.yaml"
    assert main(["--config", str(target), "--init-config"]) == 0

    data = yaml.safe_load(target.read_text())
    assert data["rewards"]["base_rate_per_second"] == "0.2"
    assert len(data["rewards"]["tiers"]) == 4


@pytest.mark.usefixtures("reset_logging")
def test_resume_applies_only_new_events(
    workspace_tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = _write_config(workspace_tmp_path)
    event_log = ChainEventLog(workspace_tmp_path / "events.jsonl")
    event_log.append(_staked("0xa", 1, 0, 1))
    assert main(["--config", str(config)]) == 0

    event_log.append(_staked("0xa", 2, 100, 2))
    capsys.readouterr()
    assert main(["--config", str(config), "--resume"]) == 0
    assert "Applied 1 events" in capsys.readouterr().out

    data = orjson.loads((workspace_tmp_path / "out" / "entities.json").read_bytes())
    assert data["checkpoint"] == [2, 0]
    state = data["entities"]["RewardState"][0]
    assert state["active_unit_count"] == 2
    assert state["points_at_last_update"] == "20"
    assert len(data["entities"]["StakingLogEntry"]) == 2

    assert main(["--config", str(config), "--resume"]) == 0
    assert "Already up to date" in capsys.readouterr().out
