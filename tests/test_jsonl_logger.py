import json
import logging
from pathlib import Path

from hexapod_host.core.commands import Command, CommandKind
from hexapod_host.core.packet import Packet
from hexapod_host.logger.logger import DedupFilter, HexapodLogBundle, JsonlLogger


def test_jsonl_logger_writes_valid_json_lines(tmp_path: Path):
    p = tmp_path / "session.jsonl"
    logger = JsonlLogger(str(p))
    logger.write("hello", a=1, b={"x": 2}, c=[1, 2, 3])
    logger.write("packet", packet=Packet(power=100), cmd=Command(CommandKind.TURN_LEFT, (90,)))
    logger.write("bytes_test", blob=Packet(rotation=-100, duration=162).serialize(), raw=b"\x01\x02")
    logger.close()

    lines = p.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 3

    for line in lines:
        obj = json.loads(line)
        assert "ts_ns" in obj
        assert "event" in obj

    pkt = json.loads(lines[1])
    assert pkt["packet"]["power"] == 100
    assert pkt["packet"]["sliders"] == [50, 25, 0, 0, 0, 0, 0, 0, 0]
    assert pkt["cmd"] == {"kind": "turn_left", "args": [90]}

    row = json.loads(lines[2])
    assert row["blob"]["bytes_len"] == 22
    assert row["blob"]["hex"].startswith(b"PKT".hex())
    assert row["blob"]["packet"]["rotation"] == -100
    assert row["blob"]["packet"]["duration"] == 162
    assert row["raw"] == {"bytes_len": 2, "hex": "0102"}


def test_custom_command_carries_its_packet(tmp_path: Path):
    p = tmp_path / "custom.jsonl"
    with JsonlLogger(str(p)) as logger:
        logger.write("queued", cmd=Command(CommandKind.CUSTOM, (Packet(power=40, duration=75),)))

    cmd = json.loads(p.read_text(encoding="utf-8"))["cmd"]
    assert cmd["kind"] == "custom"
    assert cmd["args"][0]["power"] == 40
    assert cmd["args"][0]["duration"] == 75


def test_write_after_close_is_dropped(tmp_path: Path):
    p = tmp_path / "closed.jsonl"
    with JsonlLogger(str(p)) as logger:
        logger.write("one")
    logger.write("two")
    assert len(p.read_text(encoding="utf-8").splitlines()) == 1


def _record(msg, *args, level=logging.WARNING):
    return logging.LogRecord("hexapod_host.core.packet_streamer", level, __file__, 1, msg, args, None)


def test_dedup_keys_on_the_log_call_not_the_text():
    now = [0.0]
    f = DedupFilter(cooldown_s=1.0, clock=lambda: now[0])

    assert f.filter(_record("stream send failed: %s", "reset by peer")) is True
    now[0] = 0.1
    assert f.filter(_record("stream send failed: %s", "broken pipe")) is False
    assert f.filter(_record("stream send failed: %s", "reset by peer", level=logging.ERROR)) is True
    assert f.filter(_record("link closed")) is True


def test_dedup_reports_dropped_count_after_cooldown():
    now = [0.0]
    f = DedupFilter(cooldown_s=1.0, clock=lambda: now[0])

    assert f.filter(_record("stream send failed: %s", "x")) is True
    for i in range(9):
        now[0] = 0.1 * (i + 1)
        assert f.filter(_record("stream send failed: %s", "x")) is False

    now[0] = 1.5
    rec = _record("stream send failed: %s", "x")
    assert f.filter(rec) is True
    assert rec.repeats == " (repeated 9x)"


def test_dedup_disabled_with_zero_cooldown():
    f = DedupFilter(cooldown_s=0)
    assert all(f.filter(_record("tick")) for _ in range(3))


def test_log_bundle_writes_text_and_events(tmp_path: Path):
    bundle = HexapodLogBundle(name="bundle_test", log_dir=str(tmp_path))
    logging.getLogger("bundle_test.core").warning("walking %s", "forward")
    bundle.events.write("step", n=1)
    bundle.close()

    assert "walking forward" in (tmp_path / "bundle_test.log").read_text()
    assert json.loads((tmp_path / "bundle_test.jsonl").read_text())["event"] == "step"


def test_log_bundle_collapses_a_failing_stream(tmp_path: Path):
    bundle = HexapodLogBundle(name="bundle_dedup", log_dir=str(tmp_path), dedup_cooldown_s=60.0)
    log = logging.getLogger("bundle_dedup.core.packet_streamer")
    for _ in range(10):
        log.warning("stream send failed: %s", ConnectionResetError("reset"))
    bundle.close()

    lines = (tmp_path / "bundle_dedup.log").read_text().splitlines()
    assert len([line for line in lines if "stream send failed" in line]) == 1


def test_log_bundle_close_detaches_handlers(tmp_path: Path):
    logger = logging.getLogger("bundle_detach")
    bundle = HexapodLogBundle(name="bundle_detach", log_dir=str(tmp_path), record_jsonl=False)
    assert logger.propagate is False
    bundle.close()

    assert logger.handlers == []
    assert logger.propagate is True


def test_log_bundle_without_jsonl(tmp_path: Path):
    bundle = HexapodLogBundle(name="bundle_nojsonl", log_dir=str(tmp_path), record_jsonl=False)
    assert bundle.events is None
    bundle.close()
    assert not (tmp_path / "bundle_nojsonl.jsonl").exists()
