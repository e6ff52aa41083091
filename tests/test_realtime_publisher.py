"""Tests del publicador en tiempo real (push unitario, por chunks y alarmas)."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, call

import pytest

from monitoring_ingest.core.domain import Alarm, DataSource
from monitoring_ingest.realtime import (
    EVENT_ALARM,
    EVENT_BATCH_DATA,
    EVENT_NEW_DATA,
    ChannelGateway,
    EquipmentCodeCache,
    FanOutGateway,
    RealtimePublisher,
)

from tests.factories import make_reading

EQ_A = "eq-a"
EQ_B = "eq-b"


@pytest.fixture
def gateway():
    return MagicMock(spec=ChannelGateway)


@pytest.fixture
def cache():
    c = MagicMock(spec=EquipmentCodeCache)
    codes = {EQ_A: "CODE-A", EQ_B: "CODE-B"}
    c.resolve_one.side_effect = lambda i: codes.get(i)
    c.resolve_many.side_effect = lambda ids: {i: codes[i] for i in ids if i in codes}
    return c


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def publisher(gateway, cache, sleep):
    return RealtimePublisher(gateway, cache, chunk_size=100, chunk_delay_seconds=0.01, sleep=sleep)


def _sent(gateway, event):
    return [c.args for c in gateway.send_to_equipment.call_args_list if c.args[1] == event]


def test_push_one_sends_fixed_shape_payload(publisher, gateway):
    reading = make_reading(EQ_A, reading_id=7)

    assert publisher.push_one(reading) is True

    gateway.send_to_equipment.assert_called_once()
    code, event, payload = gateway.send_to_equipment.call_args.args
    assert code == "CODE-A"
    assert event == EVENT_NEW_DATA
    assert set(payload) == {
        "id", "equipmentId", "timestamp", "metricType", "monitoringPoint",
        "value", "unit", "quality", "source",
    }
    assert payload["id"] == 7
    assert payload["equipmentId"] == "CODE-A"
    assert payload["timestamp"] == "2026-10-01T12:00:00+00:00"
    assert payload["source"] == "sensor-upload"


def test_push_one_drops_unknown_equipment(publisher, gateway):
    assert publisher.push_one(make_reading("ghost")) is False
    gateway.send_to_equipment.assert_not_called()


def test_push_one_never_raises(publisher, gateway, cache):
    gateway.send_to_equipment.side_effect = ConnectionError("socket closed")
    assert publisher.push_one(make_reading(EQ_A)) is False

    cache.resolve_one.side_effect = RuntimeError("db down")
    assert publisher.push_one(make_reading(EQ_A)) is False


def test_push_batch_250_rows_sends_three_ordered_chunks(publisher, gateway, sleep):
    readings = [make_reading(EQ_A, reading_id=i) for i in range(250)]

    chunks = publisher.push_batch(readings)

    assert chunks == 3
    sent = _sent(gateway, EVENT_BATCH_DATA)
    payloads = [args[2] for args in sent]
    assert [p["chunkIndex"] for p in payloads] == [1, 2, 3]
    assert {p["totalChunks"] for p in payloads} == {3}
    assert [len(p["data"]) for p in payloads] == [100, 100, 50]
    assert len({p["batchId"] for p in payloads}) == 1
    assert all(p["equipmentId"] == "CODE-A" for p in payloads)
    assert payloads[2]["data"][-1]["id"] == 249
    # Pausa solo entre chunks, no después del último.
    assert sleep.call_args_list == [call(0.01), call(0.01)]


def test_push_batch_resolves_all_equipment_in_one_call(publisher, cache):
    readings = [make_reading(EQ_A), make_reading(EQ_B), make_reading(EQ_A)]

    publisher.push_batch(readings)

    cache.resolve_many.assert_called_once()
    assert list(cache.resolve_many.call_args.args[0]) == [EQ_A, EQ_B]
    cache.resolve_one.assert_not_called()


def test_push_batch_single_chunk_does_not_sleep(publisher, sleep):
    publisher.push_batch([make_reading(EQ_A) for _ in range(100)])
    sleep.assert_not_called()


def test_push_batch_skips_untranslatable_equipment(publisher, gateway):
    readings = [make_reading("ghost"), make_reading(EQ_B), make_reading("ghost")]

    chunks = publisher.push_batch(readings)

    assert chunks == 1
    sent = _sent(gateway, EVENT_BATCH_DATA)
    assert len(sent) == 1
    assert sent[0][0] == "CODE-B"


@pytest.mark.parametrize(
    "source,expected",
    [
        (DataSource.SENSOR_UPLOAD, False),
        (DataSource.FILE_IMPORT, True),
        (DataSource.MANUAL_ENTRY, True),
    ],
)
def test_push_batch_flags_history_by_source(publisher, gateway, source, expected):
    publisher.push_batch([make_reading(EQ_A, source=source)])

    payload = _sent(gateway, EVENT_BATCH_DATA)[0][2]
    assert payload["isHistory"] is expected


def test_push_batch_lookup_failure_is_swallowed(publisher, gateway, cache):
    cache.resolve_many.side_effect = RuntimeError("db down")

    assert publisher.push_batch([make_reading(EQ_A)]) == 0
    gateway.send_to_equipment.assert_not_called()


def test_push_batch_empty_is_noop(publisher, cache):
    assert publisher.push_batch([]) == 0
    cache.resolve_many.assert_not_called()


def test_push_alarm_targets_equipment_room(publisher, gateway):
    alarm = Alarm(
        id="al-1",
        equipment_id=EQ_A,
        severity="high",
        status="pending",
        metric_type="temperature",
        monitoring_point="coolant",
        abnormal_value=120.0,
        threshold_range="<= 95",
        triggered_at=datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc),
    )

    assert publisher.push_alarm(alarm) is True

    code, event, payload = gateway.send_to_equipment.call_args.args
    assert (code, event) == ("CODE-A", EVENT_ALARM)
    assert payload["id"] == "al-1"
    assert payload["equipmentId"] == "CODE-A"
    assert payload["severity"] == "high"


def test_chunk_size_must_be_positive(gateway, cache):
    with pytest.raises(ValueError):
        RealtimePublisher(gateway, cache, chunk_size=0)


def test_fan_out_isolates_gateway_failures():
    broken = MagicMock(spec=ChannelGateway)
    broken.send_to_equipment.side_effect = ConnectionError("redis gone")
    healthy = MagicMock(spec=ChannelGateway)

    FanOutGateway([broken, healthy]).send_to_equipment("CODE-A", EVENT_NEW_DATA, {"id": 1})

    healthy.send_to_equipment.assert_called_once_with("CODE-A", EVENT_NEW_DATA, {"id": 1})
