# services.py
from __future__ import annotations

import json
import logging
import threading
from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from domain import Settings, Shift, WeeklySummary
from errors import InvalidBackup, InvalidInput, NotFoundError
from logic import check_derived_fields, compute_shift, next_shift_id, order_for_display, parse_date, summarize_week
from repository import ShiftRepository

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ShiftTracker:
    """
    Die Operationen, die die Oberfläche aufruft.
    Liest Einstellungen und Schichten aus dem Repository und reicht sie als
    Momentaufnahme an die reinen Funktionen in logic.py weiter.
    """

    def __init__(self, repository: ShiftRepository,
                 today: Callable[[], date] = date.today,
                 now: Callable[[], datetime] = _utc_now):
        self.repository = repository
        self.today = today
        self.now = now
        # Lesen-Ändern-Schreiben ist nicht atomar, daher nur ein Schreiber pro Prozess
        self._lock = threading.Lock()

    # --- Schichten ---

    def create_shift(self, inputs: dict) -> Shift:
        with self._lock:
            settings = self.repository.load_settings()
            shifts = self.repository.load_shifts()
            now_ms = int(self.now().timestamp() * 1000)
            shift_id = next_shift_id((s.id for s in shifts), now_ms)

            shift = compute_shift(inputs, settings, shift_id)
            shifts.append(shift)
            self.repository.save_shifts(shifts)

        logger.info(f"Schicht {shift.id} angelegt ({shift.date}, {shift.hours:.2f} h)")
        return shift

    def update_shift(self, shift_id, inputs: dict) -> Shift:
        try:
            shift_id = int(shift_id)
        except (TypeError, ValueError):
            raise NotFoundError("Schicht nicht gefunden")

        with self._lock:
            settings = self.repository.load_settings()
            shifts = self.repository.load_shifts()
            index = next((i for i, s in enumerate(shifts) if s.id == shift_id), None)
            if index is None:
                raise NotFoundError("Schicht nicht gefunden")

            shift = compute_shift(inputs, settings, shift_id)
            shifts[index] = shift
            self.repository.save_shifts(shifts)

        logger.info(f"Schicht {shift.id} aktualisiert")
        return shift

    def list_shifts(self) -> List[Shift]:
        return order_for_display(self.repository.load_shifts())

    # --- Einstellungen ---

    def get_settings(self) -> Settings:
        return self.repository.load_settings()

    def set_settings(self, settings: Settings) -> Settings:
        with self._lock:
            self.repository.save_settings(settings)
        logger.info(f"Einstellungen gespeichert: {settings.to_dict()}")
        return settings

    # --- Statistik ---

    def current_week_summary(self, reference_date: Optional[date] = None) -> WeeklySummary:
        """
        Wochenstatistik für die KW von `reference_date` (Standard: heute).
        Gibt es überhaupt keine Schichten, ist `week` None.
        """
        reference = parse_date(reference_date) if reference_date else self.today()
        shifts = self.repository.load_shifts()
        summary = summarize_week(shifts, reference)
        if not shifts:
            summary.week = None
        return summary

    # --- Backup ---

    def export_backup(self) -> dict:
        created_at = self.now().astimezone(timezone.utc).isoformat(timespec="milliseconds")
        return {
            "shifts": [s.to_dict() for s in self.repository.load_shifts()],
            "settings": self.repository.load_settings().to_dict(),
            "createdAt": created_at.replace("+00:00", "Z"),
        }

    def import_backup(self, bundle) -> dict:
        """
        Spielt ein Backup ein. Erst wird alles geprüft, dann beides in einem Schritt geschrieben;
        bei einem Fehler bleibt der bisherige Stand unverändert.
        """
        if isinstance(bundle, (bytes, bytearray)):
            try:
                bundle = bundle.decode("utf-8")
            except UnicodeDecodeError:
                raise InvalidBackup("Backup-Datei konnte nicht gelesen werden")
        if isinstance(bundle, str):
            try:
                bundle = json.loads(bundle)
            except ValueError:
                raise InvalidBackup("Backup-Datei konnte nicht gelesen werden")

        if not isinstance(bundle, dict) or not isinstance(bundle.get("shifts"), list) or bundle.get("settings") is None:
            raise InvalidBackup("Ungültige Backup-Datei")

        try:
            settings = Settings.from_dict(bundle["settings"])
            shifts = [check_derived_fields(Shift.from_dict(record)) for record in bundle["shifts"]]
        except InvalidInput as e:
            raise InvalidBackup(f"Ungültige Backup-Datei: {e.message}")

        ids = [s.id for s in shifts]
        if len(ids) != len(set(ids)):
            raise InvalidBackup("Ungültige Backup-Datei: doppelte Schicht-IDs")

        with self._lock:
            self.repository.save_all(shifts, settings)

        logger.info(f"Backup eingespielt: {len(shifts)} Schichten")
        return {"shifts": len(shifts), "settings": settings.to_dict()}


__all__ = ["ShiftTracker"]
