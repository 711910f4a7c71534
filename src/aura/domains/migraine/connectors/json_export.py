"""Migraine history provider backed by a companion-sync JSON export.

The export is either a JSON list of event dictionaries or an object with a
``"migraines"`` list. Each event uses the companion-sync keys: ``startTime`` /
``endTime`` as epoch seconds, ``painLevel``, ``has*`` symptom flags,
``took*`` medication flags and ``isTrigger*`` trigger flags.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from aura.domains.migraine.domain_logic.models import Medication, MigraineEvent, Trigger

logger = logging.getLogger(__name__)


class ConnectorError(Exception):
    """Raised when an export file cannot be parsed."""


_TRIGGER_KEYS: dict[str, Trigger] = {
    "isTriggerStress": Trigger.STRESS,
    "isTriggerLackOfSleep": Trigger.LACK_OF_SLEEP,
    "isTriggerDehydration": Trigger.DEHYDRATION,
    "isTriggerWeather": Trigger.WEATHER,
    "isTriggerHormones": Trigger.HORMONES,
    "isTriggerAlcohol": Trigger.ALCOHOL,
    "isTriggerCaffeine": Trigger.CAFFEINE,
    "isTriggerFood": Trigger.FOOD,
    "isTriggerExercise": Trigger.EXERCISE,
    "isTriggerScreenTime": Trigger.SCREEN_TIME,
    "isTriggerOther": Trigger.OTHER,
}

# "tookIbuprofin" is the spelling used by existing exports
_MEDICATION_KEYS: dict[str, Medication] = {
    "tookTylenol": Medication.TYLENOL,
    "tookIbuprofin": Medication.IBUPROFEN,
    "tookNaproxen": Medication.NAPROXEN,
    "tookExcedrin": Medication.EXCEDRIN,
    "tookUbrelvy": Medication.UBRELVY,
    "tookNurtec": Medication.NURTEC,
    "tookSymbravo": Medication.SYMBRAVO,
    "tookSumatriptan": Medication.SUMATRIPTAN,
    "tookRizatriptan": Medication.RIZATRIPTAN,
    "tookEletriptan": Medication.ELETRIPTAN,
    "tookNaratriptan": Medication.NARATRIPTAN,
    "tookFrovatriptan": Medication.FROVATRIPTAN,
    "tookReyvow": Medication.REYVOW,
    "tookTrudhesa": Medication.TRUDHESA,
    "tookElyxyb": Medication.ELYXYB,
    "tookOther": Medication.OTHER,
}

_FLAG_KEYS: dict[str, str] = {
    "hasAura": "has_aura",
    "hasPhotophobia": "has_photophobia",
    "hasPhonophobia": "has_phonophobia",
    "hasNausea": "has_nausea",
    "hasVomiting": "has_vomiting",
    "hasWakeUpHeadache": "has_wake_up_headache",
    "hasTinnitus": "has_tinnitus",
    "hasVertigo": "has_vertigo",
    "missedWork": "missed_work",
    "missedSchool": "missed_school",
    "missedEvents": "missed_events",
}


def parse_event(data: dict[str, Any]) -> MigraineEvent:
    """Convert one companion-sync dictionary into a MigraineEvent.

    Raises:
        ConnectorError: If ``startTime`` is missing or not numeric.
    """
    try:
        start = datetime.fromtimestamp(float(data["startTime"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConnectorError(f"Event has no valid startTime: {data.get('id')!r}") from exc

    end = None
    if data.get("endTime") is not None:
        end = datetime.fromtimestamp(float(data["endTime"]))

    flags = {attr: bool(data.get(key, False)) for key, attr in _FLAG_KEYS.items()}

    return MigraineEvent(
        id=str(data.get("id") or uuid.uuid4()),
        start_time=start,
        end_time=end,
        pain_level=int(data.get("painLevel", 5)),
        location=data.get("location") or "",
        notes=data.get("notes"),
        triggers=frozenset(t for key, t in _TRIGGER_KEYS.items() if data.get(key)),
        medications=frozenset(m for key, m in _MEDICATION_KEYS.items() if data.get(key)),
        **flags,
    )


def parse_export(raw: Any) -> list[MigraineEvent]:
    if isinstance(raw, dict):
        raw = raw.get("migraines", [])
    if not isinstance(raw, list):
        raise ConnectorError("Export must be a list of events or an object with 'migraines'")
    return [parse_event(item) for item in raw]


class JsonExportHistoryProvider:
    """MigraineHistoryProvider backed by a JSON export file.

    Usage::

        provider = JsonExportHistoryProvider("/path/to/migraines.json")
        history = await provider.get_history()
    """

    def __init__(self, export_path: str) -> None:
        self._export_path = export_path
        self._cache: list[MigraineEvent] | None = None
        self._cached_mtime: float | None = None

    def is_connected(self) -> bool:
        return bool(self._export_path) and Path(self._export_path).expanduser().exists()

    async def get_history(self) -> list[MigraineEvent]:
        """Parse the export, re-reading only when the file changed.

        Raises:
            ConnectorError: If the file is missing or malformed.
        """
        path = Path(self._export_path).expanduser()
        try:
            mtime = path.stat().st_mtime
        except OSError as exc:
            raise ConnectorError(f"Export file not readable: {self._export_path}") from exc

        if self._cache is None or mtime != self._cached_mtime:
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except ValueError as exc:
                raise ConnectorError(f"Export file is not valid JSON: {exc}") from exc
            self._cache = parse_export(raw)
            self._cached_mtime = mtime
            logger.info("Loaded %d migraines from export", len(self._cache))

        return list(self._cache)

    @property
    def data_source(self) -> str:
        return "json_export"

    def get_provenance(self) -> dict[str, str]:
        return {
            "data_source": self.data_source,
            "data_source_note": "Migraine history from a diary JSON export.",
            "export_path": self._export_path,
        }
