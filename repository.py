# repository.py
from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from domain import Settings, Shift
from errors import InvalidInput
from logic import check_derived_fields
from models import db, StoreEntry

logger = logging.getLogger(__name__)

STORAGE_KEY_SHIFTS = "courier_shifts"
STORAGE_KEY_SETTINGS = "courier_settings"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def set_many(self, items: Dict[str, str]) -> None: ...


class MemoryKeyValueStore:
    """Speicher im Arbeitsspeicher, für Tests und eingebettete Nutzung."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def set_many(self, items: Dict[str, str]) -> None:
        self.data.update(items)


class SqlKeyValueStore:
    """Speichert die JSON-Dokumente in der Tabelle store_entry. Braucht einen App-Kontext."""

    def get(self, key: str) -> Optional[str]:
        entry = db.session.get(StoreEntry, key)
        return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Dict[str, str]) -> None:
        """Schreibt alle Schlüssel in einer Transaktion, bei einem Fehler keinen."""
        for key, value in items.items():
            entry = db.session.get(StoreEntry, key)
            if entry is None:
                db.session.add(StoreEntry(key=key, value=value))
            else:
                entry.value = value
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise


class ShiftRepository:
    """
    Lädt und speichert Schichten und Einstellungen.
    Lesefehler (kaputtes JSON, Speicher nicht erreichbar) enden in leeren bzw.
    Default-Werten und werden nur geloggt.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _read(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except SQLAlchemyError as e:
            logger.error(f"Speicher nicht lesbar ({key}): {e}", exc_info=True)
            return None

    def load_settings(self) -> Settings:
        raw = self._read(STORAGE_KEY_SETTINGS)
        if not raw:
            return Settings()
        try:
            return Settings.from_dict(json.loads(raw))
        except (ValueError, InvalidInput) as e:
            logger.warning(f"Einstellungen beschädigt, verwende Defaults: {e}")
            return Settings()

    def save_settings(self, settings: Settings) -> None:
        self.store.set(STORAGE_KEY_SETTINGS, json.dumps(settings.to_dict()))

    def load_shifts(self) -> List[Shift]:
        raw = self._read(STORAGE_KEY_SHIFTS)
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Schichtdaten nicht lesbar, starte mit leerer Liste: {e}")
            return []
        if not isinstance(records, list):
            logger.warning("Schichtdaten sind keine Liste, starte mit leerer Liste")
            return []

        shifts = []
        for record in records:
            try:
                shifts.append(check_derived_fields(Shift.from_dict(record)))
            except InvalidInput as e:
                logger.warning(f"Ungültiger Schicht-Datensatz übersprungen: {e.message}")
        return shifts

    def save_shifts(self, shifts: List[Shift]) -> None:
        self.store.set(STORAGE_KEY_SHIFTS, json.dumps([s.to_dict() for s in shifts]))

    def save_all(self, shifts: List[Shift], settings: Settings) -> None:
        """Schichten und Einstellungen gemeinsam, z.B. beim Einspielen eines Backups."""
        self.store.set_many({
            STORAGE_KEY_SHIFTS: json.dumps([s.to_dict() for s in shifts]),
            STORAGE_KEY_SETTINGS: json.dumps(settings.to_dict()),
        })


__all__ = ["KeyValueStore", "MemoryKeyValueStore", "SqlKeyValueStore", "ShiftRepository"]
