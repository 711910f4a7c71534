"""Tests for the JSON export history provider."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime

import pytest

from aura.domains.migraine.connectors import MigraineHistoryProvider
from aura.domains.migraine.connectors.json_export import (
    ConnectorError,
    JsonExportHistoryProvider,
    parse_event,
    parse_export,
)
from aura.domains.migraine.domain_logic.models import Medication, Trigger


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


START = datetime(2026, 3, 2, 16, 30)


def _record(**overrides):
    record = {
        "id": "A1B2",
        "startTime": START.timestamp(),
        "endTime": START.timestamp() + 4 * 3600,
        "painLevel": 7,
        "location": "left temple",
        "notes": "after long meeting",
        "hasAura": True,
        "hasNausea": True,
        "missedWork": True,
        "tookIbuprofin": True,
        "tookSumatriptan": True,
        "tookTylenol": False,
        "isTriggerStress": True,
        "isTriggerScreenTime": True,
        "isTriggerFood": False,
    }
    record.update(overrides)
    return record


class TestParseEvent:
    def test_maps_companion_keys(self):
        event = parse_event(_record())
        assert event.id == "A1B2"
        assert event.start_time == START
        assert event.duration.total_seconds() == 4 * 3600
        assert event.pain_level == 7
        assert event.has_aura and event.has_nausea and event.missed_work
        assert not event.has_vomiting
        assert event.medications == frozenset({Medication.IBUPROFEN, Medication.SUMATRIPTAN})
        assert event.triggers == frozenset({Trigger.STRESS, Trigger.SCREEN_TIME})
        assert event.took_triptan and event.took_nsaid
        assert event.notes == "after long meeting"

    def test_optional_fields(self):
        record = _record()
        del record["endTime"], record["notes"], record["id"]
        event = parse_event(record)
        assert event.end_time is None
        assert event.notes is None
        assert event.id

    def test_missing_start_time_raises(self):
        record = _record()
        del record["startTime"]
        with pytest.raises(ConnectorError):
            parse_event(record)


class TestParseExport:
    def test_accepts_list_or_object(self):
        assert len(parse_export([_record(), _record(id="X")])) == 2
        assert len(parse_export({"migraines": [_record()]})) == 1

    def test_rejects_other_shapes(self):
        with pytest.raises(ConnectorError):
            parse_export("nope")


class TestProvider:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "migraines.json"
        path.write_text(json.dumps([_record(), _record(id="B")]))
        provider = JsonExportHistoryProvider(str(path))

        assert isinstance(provider, MigraineHistoryProvider)
        assert provider.is_connected()
        history = _run(provider.get_history())
        assert [e.id for e in history] == ["A1B2", "B"]
        assert provider.get_provenance()["data_source"] == "json_export"

    def test_missing_file_raises(self, tmp_path):
        provider = JsonExportHistoryProvider(str(tmp_path / "absent.json"))
        assert not provider.is_connected()
        with pytest.raises(ConnectorError):
            _run(provider.get_history())

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConnectorError):
            _run(JsonExportHistoryProvider(str(path)).get_history())
