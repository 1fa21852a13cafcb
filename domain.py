# domain.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime

from errors import InvalidInput

DEFAULT_FUEL_COST_PER_KM = 0.15

TIME_RE = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')


def _number(data: dict, key: str, default=None, minimum=None) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInput(f"Feld '{key}' ist keine Zahl")
    if minimum is not None and value < minimum:
        raise InvalidInput(f"Feld '{key}' darf nicht negativ sein")
    return value


@dataclass
class Settings:
    """Benutzereinstellungen. Es gibt genau eine Instanz, fehlende Werte kommen aus den Defaults."""
    fuel_cost_per_km: float = DEFAULT_FUEL_COST_PER_KM

    def to_dict(self) -> dict:
        return {"fuelCostPerKm": self.fuel_cost_per_km}

    @classmethod
    def from_dict(cls, data) -> Settings:
        if not isinstance(data, dict):
            raise InvalidInput("Einstellungen müssen ein Objekt sein")
        return cls(fuel_cost_per_km=_number(data, "fuelCostPerKm", DEFAULT_FUEL_COST_PER_KM))


@dataclass
class Shift:
    """Eine erfasste Schicht. hours, total_costs, net und hourly werden immer berechnet."""
    id: int
    date: date
    start_time: str
    end_time: str
    orders: int = 0
    earnings: float = 0.0
    distance: float = 0.0
    parking: float = 0.0
    hours: float = 0.0
    total_costs: float = 0.0
    net: float = 0.0
    hourly: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "startTime": self.start_time,
            "endTime": self.end_time,
            "orders": self.orders,
            "earnings": self.earnings,
            "distance": self.distance,
            "parking": self.parking,
            "hours": self.hours,
            "totalCosts": self.total_costs,
            "net": self.net,
            "hourly": self.hourly,
        }

    @classmethod
    def from_dict(cls, data) -> Shift:
        """Liest einen gespeicherten Datensatz und prüft dabei die Struktur."""
        if not isinstance(data, dict):
            raise InvalidInput("Schicht muss ein Objekt sein")

        shift_id = data.get("id")
        if isinstance(shift_id, bool) or not isinstance(shift_id, int):
            raise InvalidInput("Schicht ohne gültige ID")

        try:
            work_date = datetime.strptime(str(data.get("date")), "%Y-%m-%d").date()
        except ValueError:
            raise InvalidInput(f"Schicht {shift_id}: ungültiges Datum")

        for key in ("startTime", "endTime"):
            if not TIME_RE.match(str(data.get(key) or "")):
                raise InvalidInput(f"Schicht {shift_id}: ungültige Uhrzeit in '{key}'")

        orders = _number(data, "orders", 0, minimum=0)
        if orders != int(orders):
            raise InvalidInput(f"Schicht {shift_id}: 'orders' muss ganzzahlig sein")

        return cls(
            id=shift_id,
            date=work_date,
            start_time=data["startTime"],
            end_time=data["endTime"],
            orders=int(orders),
            earnings=_number(data, "earnings", 0.0, minimum=0),
            distance=_number(data, "distance", 0.0, minimum=0),
            parking=_number(data, "parking", 0.0, minimum=0),
            # abgeleitete Felder müssen vorhanden sein, sie werden nicht nachberechnet
            hours=_number(data, "hours"),
            total_costs=_number(data, "totalCosts"),
            net=_number(data, "net"),
            hourly=_number(data, "hourly"),
        )


@dataclass
class WeeklySummary:
    """Wochenstatistik, wird bei jeder Abfrage neu berechnet und nie gespeichert."""
    week: int | None
    hours: float = 0.0
    orders: int = 0
    net: float = 0.0
    hourly: float = 0.0

    def to_dict(self) -> dict:
        return {
            "week": self.week,
            "hours": self.hours,
            "orders": self.orders,
            "net": self.net,
            "hourly": self.hourly,
        }
