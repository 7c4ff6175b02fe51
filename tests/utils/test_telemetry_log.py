from __future__ import annotations

import json
from pathlib import Path

import pytest
from jsonschema import ValidationError

from recipectl.settings import RuntimeSettings
from recipectl.utils import telemetry


def test_record_event_appends_jsonl(settings: RuntimeSettings) -> None:
    written = telemetry.record_structured_event(
        settings,
        "dispatch",
        payload={"recipe": "cli"},
        status="ok",
        component="dispatch",
        duration_ms=12.5,
    )
    assert written is True
    lines = settings.telemetry_log.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "dispatch"
    assert record["durationMs"] == 12.5
    assert record["component"] == "dispatch"
    assert isinstance(record["ts"], float)


def test_optional_fields_are_omitted(settings: RuntimeSettings) -> None:
    telemetry.record_structured_event(settings, "dispatch")
    (record,) = telemetry.iter_events(settings)
    assert set(record) == {"ts", "event", "payload", "level"}


def test_opt_out_disables_recording(settings: RuntimeSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RECIPECTL_TELEMETRY", "off")
    assert telemetry.record_structured_event(settings, "dispatch", payload={"recipe": "cli"}) is False
    assert not settings.telemetry_log.exists()


@pytest.mark.parametrize(
    ("event", "extra"),
    [("dispatch", {"level": "debug"}), ("", {}), ("dispatch", {"duration_ms": -1})],
)
def test_invalid_records_are_rejected(settings: RuntimeSettings, event: str, extra: dict) -> None:
    with pytest.raises(ValidationError):
        telemetry.record_structured_event(settings, event, **extra)
    assert not settings.telemetry_log.exists()


def test_unwritable_log_dir_is_reported_not_raised(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    blocker = tmp_path / "home"
    blocker.write_text("not a directory", encoding="utf-8")
    settings = RuntimeSettings(home_dir=blocker, log_dir=blocker / "logs")
    assert telemetry.record_structured_event(settings, "dispatch") is False
    assert "telemetry not written" in capsys.readouterr().err


def test_iter_events_skips_garbage(settings: RuntimeSettings) -> None:
    settings.telemetry_log.write_text('{"event": "dispatch"}\nnot json\n\n', encoding="utf-8")
    assert list(telemetry.iter_events(settings)) == [{"event": "dispatch"}]


def test_iter_events_without_log(settings: RuntimeSettings) -> None:
    assert list(telemetry.iter_events(settings)) == []
    assert telemetry.recent_events(settings, 5) == []


def test_recent_events_keeps_the_tail(settings: RuntimeSettings) -> None:
    for index in range(4):
        telemetry.record_structured_event(settings, "dispatch", payload={"n": index})
    assert [evt["payload"]["n"] for evt in telemetry.recent_events(settings, 2)] == [2, 3]
    assert len(telemetry.recent_events(settings)) == 4


def test_summarize_counts_recipes() -> None:
    summary = telemetry.summarize(
        [
            {"event": "dispatch", "status": "ok", "payload": {"recipe": "cli"}},
            {"event": "dispatch", "status": "fail", "payload": {"recipe": "cli"}},
            {"event": "dispatch.error"},
        ]
    )
    assert summary == {
        "total": 3,
        "by_event": {"dispatch": 2, "dispatch.error": 1},
        "by_status": {"ok": 1, "fail": 1, "unknown": 1},
        "by_recipe": {"cli": 2},
    }


def test_clear_is_idempotent(settings: RuntimeSettings) -> None:
    telemetry.record_structured_event(settings, "dispatch")
    telemetry.clear(settings)
    telemetry.clear(settings)
    assert not settings.telemetry_log.exists()
