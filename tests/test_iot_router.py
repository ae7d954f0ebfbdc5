"""
Integration tests for the IoT endpoints
Run with: pytest tests/test_iot_router.py -v
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from src.api.config import settings
from src.api.models.iot import MoistureReading, PumpAction
from src.utils.clock import utcnow
from tests.factories import auth_headers

SENSOR_URL = "/api/v1/iot/sensor-data"
PUMP_URL = "/api/v1/iot/pump-control"


def sample(device_id, moisture=45.0, temperature=26.0):
    return {"device_id": str(device_id), "moisture_level": moisture, "temperature": temperature}


class TestSensorData:
    """Test telemetry ingestion"""

    def test_low_moisture_triggers_pump(self, client, world, fetch):
        """Test that 22% moisture starts the farmer's pump for 60 seconds"""
        response = client.post(SENSOR_URL, json=sample(world.sensor_id, 22.0, 31.0))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Sensor data recorded",
            "pump_triggered": True
        }

        actions = fetch(select(PumpAction))
        assert len(actions) == 1
        assert actions[0].device_id == world.pump_id
        assert (actions[0].action, actions[0].triggered_by, actions[0].duration_seconds) == ("start", "automatic", 60)

    def test_normal_moisture_only_records(self, client, world, fetch):
        response = client.post(SENSOR_URL, json=sample(world.sensor_id, 30.0))

        assert response.status_code == 200
        assert response.json()["pump_triggered"] is False
        assert len(fetch(select(MoistureReading))) == 1
        assert fetch(select(PumpAction)) == []

    def test_reading_round_trip(self, client, world, fetch):
        """Test that stored values equal the posted ones"""
        client.post(SENSOR_URL, json=sample(world.sensor_id, 61.37, -2.25))

        reading = fetch(select(MoistureReading))[0]
        assert reading.moisture_level == 61.37
        assert reading.temperature == -2.25

    @pytest.mark.parametrize("moisture", [120.0, -5.0])
    def test_out_of_range_reading_is_stored(self, client, world, fetch, moisture):
        """Test that faulty sensor values are recorded as reported"""
        response = client.post(SENSOR_URL, json=sample(world.sensor_id, moisture))

        assert response.status_code == 200
        readings = fetch(select(MoistureReading))
        assert [r.moisture_level for r in readings] == [moisture]

    def test_second_low_reading_while_running(self, client, world, fetch):
        """Test that a pump already running is not started again"""
        first = client.post(SENSOR_URL, json=sample(world.sensor_id, 20.0))
        second = client.post(SENSOR_URL, json=sample(world.sensor_id, 18.0))

        assert first.json()["pump_triggered"] is True
        assert second.json()["pump_triggered"] is False
        assert len(fetch(select(PumpAction))) == 1

    def test_low_reading_after_manual_stop(self, client, world, fetch):
        """Test that a stopped pump can be started automatically again"""
        client.post(SENSOR_URL, json=sample(world.sensor_id, 20.0))
        stop = client.post(
            PUMP_URL,
            json={"device_id": str(world.pump_id), "action": "stop"},
            headers=auth_headers(world.farmer_id)
        )
        again = client.post(SENSOR_URL, json=sample(world.sensor_id, 19.0))

        assert stop.status_code == 200
        assert again.json()["pump_triggered"] is True
        assert [a.action for a in fetch(select(PumpAction).order_by(PumpAction.created_at))] == [
            "start", "stop", "start"
        ]

    def test_low_reading_after_window_elapsed(self, client, seed, world):
        seed(PumpAction(
            device_id=world.pump_id,
            action="start",
            triggered_by="automatic",
            duration_seconds=60,
            created_at=utcnow() - timedelta(seconds=90),
        ))

        response = client.post(SENSOR_URL, json=sample(world.sensor_id, 25.0))
        assert response.json()["pump_triggered"] is True

    def test_unknown_device(self, client, world, fetch):
        """Test that an unknown device id is a 404 and nothing is written"""
        response = client.post(SENSOR_URL, json=sample(uuid.uuid4(), 10.0))

        assert response.status_code == 404
        assert response.json() == {"error": "Device not found"}
        assert fetch(select(MoistureReading)) == []
        assert fetch(select(PumpAction)) == []

    def test_malformed_device_id(self, client, world):
        response = client.post(SENSOR_URL, json=sample("sensor-01", 10.0))
        assert response.status_code == 404

    def test_pump_id_is_not_a_sensor(self, client, world, fetch):
        response = client.post(SENSOR_URL, json=sample(world.pump_id, 10.0))

        assert response.status_code == 404
        assert fetch(select(MoistureReading)) == []

    @pytest.mark.parametrize("payload", [
        {"moisture_level": 20.0, "temperature": 25.0},
        {"device_id": "x", "temperature": 25.0},
        {"device_id": "x", "moisture_level": 20.0},
        {"device_id": "x", "moisture_level": "wet", "temperature": 25.0},
    ])
    def test_invalid_body(self, client, world, fetch, payload):
        response = client.post(SENSOR_URL, json=payload)

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid request body"
        assert fetch(select(MoistureReading)) == []

    def test_change_notifications(self, client, world, notifier):
        client.post(SENSOR_URL, json=sample(world.sensor_id, 12.0))
        assert notifier.tables() == ["moisture_readings", "pump_actions"]

    def test_cors_headers_on_response(self, client, world):
        response = client.post(SENSOR_URL, json=sample(world.sensor_id))
        assert response.headers["access-control-allow-origin"] == "*"

    def test_device_key_enforced_when_configured(self, client, world, monkeypatch, fetch):
        monkeypatch.setattr(settings, "SENSOR_INGEST_KEY", "field-key")

        rejected = client.post(SENSOR_URL, json=sample(world.sensor_id))
        accepted = client.post(SENSOR_URL, json=sample(world.sensor_id), headers={"X-Device-Key": "field-key"})

        assert rejected.status_code == 401
        assert accepted.status_code == 200
        assert len(fetch(select(MoistureReading))) == 1


class TestPumpControl:
    """Test manual pump commands"""

    def test_owner_can_stop_pump(self, client, world, fetch):
        response = client.post(
            PUMP_URL,
            json={"device_id": str(world.pump_id), "action": "stop"},
            headers=auth_headers(world.farmer_id)
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Pump stop command sent",
            "device_id": str(world.pump_id),
            "action": "stop"
        }
        action = fetch(select(PumpAction))[0]
        assert (action.action, action.triggered_by) == ("stop", "manual")

    def test_foreign_pump_is_not_found(self, client, world, fetch):
        """Test that another farmer's pump gets the same 404 as a missing one"""
        response = client.post(
            PUMP_URL,
            json={"device_id": str(world.other_pump_id), "action": "start"},
            headers=auth_headers(world.farmer_id)
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Device not found or unauthorized"}
        assert fetch(select(PumpAction)) == []

    def test_missing_authorization(self, client, world, fetch):
        response = client.post(PUMP_URL, json={"device_id": str(world.pump_id), "action": "start"})

        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}
        assert fetch(select(PumpAction)) == []

    def test_invalid_token(self, client, world, fetch):
        response = client.post(
            PUMP_URL,
            json={"device_id": str(world.pump_id), "action": "start"},
            headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert fetch(select(PumpAction)) == []

    def test_non_bearer_scheme_is_unauthorized(self, client, world, fetch):
        """Test that a present but non-Bearer header is a bad credential"""
        response = client.post(
            PUMP_URL,
            json={"device_id": str(world.pump_id), "action": "start"},
            headers={"Authorization": "Token abc"}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert fetch(select(PumpAction)) == []

    def test_unknown_action_rejected(self, client, world, fetch):
        response = client.post(
            PUMP_URL,
            json={"device_id": str(world.pump_id), "action": "flood"},
            headers=auth_headers(world.farmer_id)
        )

        assert response.status_code == 422
        assert fetch(select(PumpAction)) == []

    def test_sensor_is_not_a_pump(self, client, world):
        response = client.post(
            PUMP_URL,
            json={"device_id": str(world.sensor_id), "action": "start"},
            headers=auth_headers(world.farmer_id)
        )
        assert response.status_code == 404


class TestPreflight:

    @pytest.mark.parametrize("url", [SENSOR_URL, PUMP_URL])
    def test_options_returns_cors_headers(self, client, url):
        response = client.options(url)

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-headers"] == "authorization, x-client-info, apikey, content-type"
