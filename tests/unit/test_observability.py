import json

from loguru import logger

from core.observability import EventLog, configure_logger


def test_event_log_writes_serialized_records(cfg, tmp_path):
    config = cfg.model_copy(update={"log_to_file": True, "logs_dir": str(tmp_path / "logs")})
    configure_logger(config)
    try:
        EventLog(config).event("guard", "Guard verdict computed", payload={"verdict": "PASS"})
    finally:
        logger.remove()

    lines = (tmp_path / "logs" / "gh_switcher.log").read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    message = json.loads(record["record"]["message"])
    assert message["component"] == "guard"
    assert message["payload"] == {"verdict": "PASS"}
    assert record["record"]["extra"]["component"] == "guard"


def test_no_file_sink_when_disabled(cfg, tmp_path):
    configure_logger(cfg)
    try:
        EventLog(cfg).event("switch", "Profile applied to git config")
    finally:
        logger.remove()
    assert not (tmp_path / "logs").exists()
