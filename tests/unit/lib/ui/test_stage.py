"""Unit tests for stage-based progress reporting."""

from __future__ import annotations

from typing import Any

import pytest

from microdeck.lib.ui.stage import EventLogger, SkipStageError, format_duration


@pytest.mark.unit
class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "00:00:00"),
            (9.99, "00:00:09"),
            (61, "00:01:01"),
            (3725, "01:02:05"),
            (-3, "00:00:00"),
        ],
    )
    def test_formats(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected


@pytest.mark.unit
class TestStage:
    """Tests for Stage.perform and Stage.perform_complex."""

    def test_successful_step(self, fake_ui: Any, fake_clock: Any) -> None:
        stage = EventLogger(fake_ui, clock=fake_clock).new_stage()

        result = stage.perform_complex(
            "deleting deployment",
            lambda s: s.perform("Deleting VM 'vm-1'", lambda: "deleted"),
        )

        assert result == "deleted"
        assert fake_ui.said == [
            "Started deleting deployment",
            "Started deleting deployment > Deleting VM 'vm-1'...",
            " done. (00:00:00)",
            "Done deleting deployment",
            "",
        ]

    def test_elapsed_time(self, fake_ui: Any, fake_clock: Any) -> None:
        stage = EventLogger(fake_ui, clock=fake_clock).new_stage()

        stage.perform("Waiting", lambda: fake_clock.sleep(75))

        assert fake_ui.said == ["Started Waiting...", " done. (00:01:15)"]

    def test_failed_step_reraises(self, fake_ui: Any, fake_clock: Any) -> None:
        stage = EventLogger(fake_ui, clock=fake_clock).new_stage()

        def fail(s: Any) -> None:
            s.perform("Deleting disk 'd-1'", _raise(RuntimeError("busy")))

        with pytest.raises(RuntimeError, match="busy"):
            stage.perform_complex("deleting deployment", fail)

        assert fake_ui.said == [
            "Started deleting deployment",
            "Started deleting deployment > Deleting disk 'd-1'...",
            " failed (busy). (00:00:00)",
        ]

    def test_skipped_step(self, fake_ui: Any, fake_clock: Any) -> None:
        stage = EventLogger(fake_ui, clock=fake_clock).new_stage()

        result = stage.perform(
            "Uploading stemcell", _raise(SkipStageError("already uploaded"))
        )

        assert result is None
        assert fake_ui.said == [
            "Started Uploading stemcell...",
            " skipped (already uploaded). (00:00:00)",
        ]

    def test_empty_complex_stage(self, fake_ui: Any, fake_clock: Any) -> None:
        EventLogger(fake_ui, clock=fake_clock).new_stage().perform_complex(
            "deleting deployment", lambda s: None
        )

        assert fake_ui.said == [
            "Started deleting deployment",
            "Done deleting deployment",
            "",
        ]

    def test_nested_complex_stage(self, fake_ui: Any, fake_clock: Any) -> None:
        stage = EventLogger(fake_ui, clock=fake_clock).new_stage()

        stage.perform_complex(
            "deploying",
            lambda s: s.perform_complex(
                "compiling", lambda inner: inner.perform("Step", lambda: None)
            ),
        )

        assert "Started deploying > compiling > Step..." in fake_ui.said


def _raise(exc: Exception) -> Any:
    def action() -> None:
        raise exc

    return action
