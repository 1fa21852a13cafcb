import math
from datetime import date, datetime

from domain import Shift, WeeklySummary
from errors import InvalidInput, ValidationError


REQUIRED_FIELDS = ("date", "startTime", "endTime")


# --- PARSE-ODER-DEFAULT ---

def parse_float(value, default=0.0):
    """
    Wandelt Formulareingaben in float um. Nicht lesbare Werte ergeben `default`,
    die Schicht wird trotzdem gespeichert.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(str(value).strip().replace(',', '.'))
    except ValueError:
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def parse_int(value, default=0):
    """Wie parse_float, Nachkommastellen werden abgeschnitten ('7.9' -> 7)."""
    result = parse_float(value, default=None)
    if result is None:
        return default
    return int(result)


# --- ZEITRECHNUNG ---

def normalize_time_str(t_str):
    """
    Bereinigt Benutzereingaben und macht daraus ein sauberes 'HH:MM' Format.
    """
    if not t_str: return None
    t_str = str(t_str).strip().replace('.', ':')

    try:
        h, m = 0, 0
        if ':' in t_str:
            parts = t_str.split(':')
            if len(parts) != 2: return None
            h, m = int(parts[0]), int(parts[1])
        elif len(t_str) == 4:
            h, m = int(t_str[:2]), int(t_str[2:])
        elif len(t_str) == 3:
            h, m = int(t_str[:1]), int(t_str[1:])
        elif len(t_str) <= 2:
            h, m = int(t_str), 0
        else:
            return None

        if h < 0 or m < 0 or h > 23 or m > 59: return None
        return f"{h:02d}:{m:02d}"
    except ValueError:
        return None


def _to_minutes(t_str):
    clean = normalize_time_str(t_str)
    if clean is None:
        raise InvalidInput(f"Ungültige Uhrzeit: {t_str!r}")
    h, m = map(int, clean.split(':'))
    return h * 60 + m


def elapsed_hours(start_time, end_time):
    """
    Dauer einer Schicht in Stunden.
    Ende <= Start zählt als Ende am Folgetag, d.h. gleiche Uhrzeiten ergeben 24h.
    """
    diff = _to_minutes(end_time) - _to_minutes(start_time)
    if diff <= 0:
        diff += 24 * 60
    return diff / 60.0


def parse_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInput(f"Ungültiges Datum: {value!r}")


def iso_week(day):
    """ISO-8601 Kalenderwoche (1-53). Der 01.01. kann noch zur KW 52/53 des Vorjahres gehören."""
    return parse_date(day).isocalendar()[1]


# --- SCHICHT-ABRECHNUNG ---

def _is_blank(value):
    return value is None or str(value).strip() == ""


def next_shift_id(existing_ids, now_ms):
    """
    IDs basieren auf dem Erstellungszeitpunkt (ms). Kollidiert der Zeitstempel
    oder läuft die Uhr zurück, wird hinter die höchste vorhandene ID gezählt.
    """
    highest = max(existing_ids, default=0)
    return max(int(now_ms), highest + 1)


def compute_shift(inputs, settings, shift_id):
    """
    Berechnet eine komplette Schicht aus den Rohdaten des Formulars.
    Reine Funktion: Einstellungen und ID werden übergeben, nichts wird gelesen oder gespeichert.
    """
    missing = [f for f in REQUIRED_FIELDS if _is_blank(inputs.get(f))]
    if missing:
        raise ValidationError("Bitte Datum und Uhrzeiten ausfüllen")

    work_date = parse_date(inputs["date"])
    start = normalize_time_str(inputs["startTime"])
    end = normalize_time_str(inputs["endTime"])
    if start is None or end is None:
        raise InvalidInput("Ungültige Uhrzeit")

    shift = Shift(
        id=int(shift_id),
        date=work_date,
        start_time=start,
        end_time=end,
        orders=_non_negative("orders", parse_int(inputs.get("orders"))),
        earnings=_non_negative("earnings", parse_float(inputs.get("earnings"))),
        distance=_non_negative("distance", parse_float(inputs.get("distance"))),
        parking=_non_negative("parking", parse_float(inputs.get("parking"))),
    )
    return recompute_shift(shift, settings)


def _non_negative(name, value):
    if value < 0:
        raise InvalidInput(f"'{name}' darf nicht negativ sein")
    return value


def recompute_shift(shift, settings):
    """Setzt hours, total_costs, net und hourly neu aus den Rohfeldern."""
    shift.hours = elapsed_hours(shift.start_time, shift.end_time)
    shift.total_costs = shift.distance * settings.fuel_cost_per_km + shift.parking
    shift.net = shift.earnings - shift.total_costs
    shift.hourly = shift.net / shift.hours if shift.hours > 0 else 0.0
    return shift


def check_derived_fields(shift):
    """
    Prüft gespeicherte bzw. importierte Schichten: hours, net und hourly müssen
    zu den Rohfeldern passen. total_costs hängt von den Einstellungen zum
    Zeitpunkt der Erfassung ab und wird daher nur über net geprüft.
    """
    expected_hours = elapsed_hours(shift.start_time, shift.end_time)
    if not math.isclose(shift.hours, expected_hours, abs_tol=1e-9):
        raise InvalidInput(f"Schicht {shift.id}: Stunden passen nicht zu Start und Ende")
    if not math.isclose(shift.net, shift.earnings - shift.total_costs, rel_tol=1e-9, abs_tol=1e-9):
        raise InvalidInput(f"Schicht {shift.id}: Netto passt nicht zu Verdienst und Kosten")
    if not math.isclose(shift.hourly, shift.net / shift.hours, rel_tol=1e-9, abs_tol=1e-9):
        raise InvalidInput(f"Schicht {shift.id}: Stundenlohn passt nicht zu Netto und Stunden")
    return shift


# --- AUSWERTUNG ---

def summarize_week(shifts, reference_date):
    """
    Summiert alle Schichten, deren KW der KW von `reference_date` entspricht.
    Verglichen wird nur die Wochennummer, nicht das Jahr.
    """
    current_week = iso_week(reference_date)
    hours, orders, net = 0.0, 0, 0.0

    for s in shifts:
        if iso_week(s.date) == current_week:
            hours += s.hours
            orders += s.orders
            net += s.net

    hourly = net / hours if hours > 0 else 0.0
    return WeeklySummary(week=current_week, hours=hours, orders=orders, net=net, hourly=hourly)


def order_for_display(shifts):
    # Sortierung nach ID (= Erfassungsreihenfolge), nicht nach Datum
    return sorted(shifts, key=lambda s: s.id, reverse=True)
