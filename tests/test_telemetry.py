from __future__ import annotations

import pytest

from undotree_engine.runtime import telemetry


def test_events_are_kept_in_session_log() -> None:
    telemetry.clear_session_log()

    telemetry.record_event("history.test", level="warning", data={"location": [0]})

    assert telemetry.session_log() == ["[WARNING] history.test location=[0]"]


def test_failed_span_is_logged_and_reraised() -> None:
    telemetry.clear_session_log()

    with pytest.raises(ValueError):
        with telemetry.span("buffer::boom", component=True, metadata={"row": 3}):
            raise ValueError("bad row")

    assert telemetry.session_log()[-1] == "[ERROR] buffer::boom failed: bad row"


def test_env_flag_reads_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UNDOTREE_ENGINE_UNDOFILE", "yes")
    monkeypatch.setenv("UNDOTREE_ENGINE_WRAP", "0")

    assert telemetry.env_flag("UNDOFILE", False) is True
    assert telemetry.env_flag("WRAP", True) is False
    assert telemetry.env_flag("MISSING", True) is True


def test_unknown_preset_is_rejected() -> None:
    with pytest.raises(ValueError):
        telemetry.configure(preset="loud")
