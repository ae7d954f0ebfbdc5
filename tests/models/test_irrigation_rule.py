"""
Unit tests for the rule-based irrigation decision

Tests the pure decision logic including:
- Threshold boundaries
- Pump selection
- Derived pump state from the latest action
- Moisture display bands
"""

import pytest
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from src.models.irrigation import (
    AUTO_RUN_SECONDS,
    MOISTURE_THRESHOLD,
    DecisionReason,
    MoistureStatus,
    PumpState,
    decide_irrigation,
    derive_pump_state,
    moisture_status,
    needs_irrigation
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def pump():
    return SimpleNamespace(id=uuid.uuid4())


def action(kind="start", seconds_ago=10, duration=AUTO_RUN_SECONDS, naive=False):
    created_at = NOW - timedelta(seconds=seconds_ago)
    if naive:
        created_at = created_at.replace(tzinfo=None)
    return SimpleNamespace(action=kind, created_at=created_at, duration_seconds=duration)


class TestThreshold:
    """Test the fixed 30% threshold"""

    @pytest.mark.parametrize("level,expected", [
        (0.0, True),
        (22.0, True),
        (29.99, True),
        (30.0, False),
        (30.01, False),
        (100.0, False),
    ])
    def test_needs_irrigation(self, level, expected):
        """Test that only readings strictly below the threshold need water"""
        assert needs_irrigation(level) is expected

    def test_threshold_constants(self):
        assert MOISTURE_THRESHOLD == 30.0
        assert AUTO_RUN_SECONDS == 60


class TestDecideIrrigation:
    """Test decisions for single samples"""

    def test_low_moisture_starts_first_pump(self):
        """Test that a low reading starts the first active pump for 60 seconds"""
        first, second = pump(), pump()
        decision = decide_irrigation(22.0, [first, second], None, NOW)

        assert decision.triggered is True
        assert decision.reason == DecisionReason.LOW_MOISTURE
        assert decision.pump_id == first.id
        assert decision.duration_seconds == 60

        values = decision.action_values()
        assert values == {
            "device_id": first.id,
            "action": "start",
            "triggered_by": "automatic",
            "duration_seconds": 60,
        }

    def test_moisture_at_threshold_does_nothing(self):
        """Test that exactly 30% does not trigger"""
        decision = decide_irrigation(30.0, [pump()], None, NOW)

        assert decision.triggered is False
        assert decision.reason == DecisionReason.MOISTURE_OK
        assert decision.pump_id is None

    def test_no_active_pump(self):
        """Test that a low reading without pumps is recorded but not acted on"""
        decision = decide_irrigation(10.0, [], None, NOW)

        assert decision.triggered is False
        assert decision.reason == DecisionReason.NO_ACTIVE_PUMP

    def test_running_pump_is_not_started_again(self):
        """Test that a start inside its run window suppresses a new start"""
        target = pump()
        decision = decide_irrigation(20.0, [target], action(seconds_ago=30), NOW)

        assert decision.triggered is False
        assert decision.reason == DecisionReason.PUMP_ALREADY_RUNNING
        assert decision.pump_id == target.id
        assert "running_since" in decision.metadata

    def test_elapsed_window_allows_new_start(self):
        """Test that a start whose window has elapsed no longer counts as running"""
        decision = decide_irrigation(20.0, [pump()], action(seconds_ago=61), NOW)
        assert decision.triggered is True

    def test_stopped_pump_can_start(self):
        decision = decide_irrigation(20.0, [pump()], action("stop", seconds_ago=1, duration=None), NOW)
        assert decision.triggered is True

    def test_action_values_requires_trigger(self):
        """Test that a non-triggering decision has no action to write"""
        decision = decide_irrigation(45.0, [pump()], None, NOW)
        with pytest.raises(ValueError):
            decision.action_values()


class TestDerivePumpState:
    """Test pump state derived from the latest action (last write wins)"""

    def test_no_actions_is_idle(self):
        assert derive_pump_state(None, NOW) == PumpState.IDLE

    def test_stop_is_idle(self):
        assert derive_pump_state(action("stop", duration=None), NOW) == PumpState.IDLE

    def test_start_within_window_is_running(self):
        assert derive_pump_state(action(seconds_ago=59), NOW) == PumpState.RUNNING

    def test_start_at_window_end_is_idle(self):
        assert derive_pump_state(action(seconds_ago=60), NOW) == PumpState.IDLE

    def test_start_without_duration_runs_until_stopped(self):
        """Test that an open-ended manual start stays running"""
        assert derive_pump_state(action(seconds_ago=86400, duration=None), NOW) == PumpState.RUNNING

    def test_naive_timestamps_are_treated_as_utc(self):
        """Test that naive timestamps from the store compare correctly"""
        assert derive_pump_state(action(seconds_ago=5, naive=True), NOW) == PumpState.RUNNING
        assert derive_pump_state(action(seconds_ago=500, naive=True), NOW) == PumpState.IDLE


class TestMoistureStatus:
    """Test display bands"""

    @pytest.mark.parametrize("level,expected", [
        (0.0, MoistureStatus.LOW),
        (29.9, MoistureStatus.LOW),
        (30.0, MoistureStatus.MEDIUM),
        (59.9, MoistureStatus.MEDIUM),
        (60.0, MoistureStatus.OPTIMAL),
        (100.0, MoistureStatus.OPTIMAL),
    ])
    def test_bands(self, level, expected):
        assert moisture_status(level) == expected
