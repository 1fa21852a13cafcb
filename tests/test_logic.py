import pytest
from datetime import date
from domain import Settings, Shift
from errors import InvalidInput, ValidationError
from logic import (
    normalize_time_str, elapsed_hours, parse_float, parse_int, iso_week,
    compute_shift, recompute_shift, check_derived_fields, next_shift_id, summarize_week, order_for_display,
)

# --- Helper ---

def make_shift(shift_id, day, hours=4.0, orders=5, net=50.0):
    """Fertig berechnete Schicht, ohne den Umweg über compute_shift."""
    return Shift(
        id=shift_id, date=date.fromisoformat(day), start_time="10:00", end_time="14:00",
        orders=orders, hours=hours, net=net, hourly=net / hours,
    )

# --- 1. Tests für normalize_time_str ---

@pytest.mark.parametrize("input_str, expected", [
    # Standard Formate
    ("08:00", "08:00"),
    ("8:00", "08:00"),
    ("17:30", "17:30"),
    ("00:00", "00:00"),
    ("23:59", "23:59"),
    # Formate ohne Doppelpunkt
    ("0800", "08:00"),
    ("800", "08:00"),
    # Nur Stunden
    ("8", "08:00"),
    # Mit Punkt statt Doppelpunkt
    ("8.30", "08:30"),
    # Leerzeichen Trimmen
    (" 08:00 ", "08:00"),
])
def test_normalize_time_valid(input_str, expected):
    assert normalize_time_str(input_str) == expected

@pytest.mark.parametrize("input_str", [
    "",
    None,
    "24:00",   # Stunde zu hoch
    "08:60",   # Minute zu hoch
    "abc",     # Keine Zahl
    "12:30:00",
    "12345",   # Zu lang
    "-1:30",
])
def test_normalize_time_invalid(input_str):
    assert normalize_time_str(input_str) is None

# --- 2. Tests für elapsed_hours ---

@pytest.mark.parametrize("start, end, expected", [
    ("08:00", "12:00", 4.0),
    ("09:15", "17:45", 8.5),
    ("00:00", "00:01", 1 / 60),
    # Über Mitternacht
    ("22:00", "06:00", 8.0),
    ("23:30", "00:15", 0.75),
    # Gleiche Uhrzeit = volle 24 Stunden, nicht 0
    ("09:00", "09:00", 24.0),
    ("00:00", "00:00", 24.0),
])
def test_elapsed_hours(start, end, expected):
    assert elapsed_hours(start, end) == pytest.approx(expected)

def test_elapsed_hours_matches_minute_difference():
    for start_min in range(0, 24 * 60, 97):
        for end_min in range(start_min + 1, 24 * 60, 89):
            start = f"{start_min // 60:02d}:{start_min % 60:02d}"
            end = f"{end_min // 60:02d}:{end_min % 60:02d}"
            assert elapsed_hours(start, end) == pytest.approx((end_min - start_min) / 60)

@pytest.mark.parametrize("start, end", [
    ("25:00", "08:00"),
    ("08:00", "abc"),
    (None, "12:00"),
])
def test_elapsed_hours_rejects_malformed_times(start, end):
    with pytest.raises(InvalidInput):
        elapsed_hours(start, end)

# --- 3. Tests für parse_float / parse_int ---

@pytest.mark.parametrize("value, expected", [
    ("12.5", 12.5),
    ("12,5", 12.5),   # Komma als Dezimaltrenner
    (7, 7.0),
    ("", 0.0),
    (None, 0.0),
    ("abc", 0.0),
    ("nan", 0.0),
    ("inf", 0.0),
    (True, 0.0),
])
def test_parse_float(value, expected):
    assert parse_float(value) == expected

def test_parse_float_uses_given_default():
    assert parse_float("kaputt", default=1.5) == 1.5

@pytest.mark.parametrize("value, expected", [
    ("12", 12),
    ("7.9", 7),
    (3, 3),
    ("", 0),
    ("zwölf", 0),
    (None, 0),
])
def test_parse_int(value, expected):
    assert parse_int(value) == expected

# --- 4. Tests für compute_shift ---

def test_compute_shift_derives_all_values():
    inputs = {
        "date": "2024-03-04", "startTime": "09:00", "endTime": "13:30",
        "orders": "12", "earnings": "80.50", "distance": "40", "parking": "3",
    }
    shift = compute_shift(inputs, Settings(fuel_cost_per_km=0.2), 1001)

    assert shift.id == 1001
    assert shift.date == date(2024, 3, 4)
    assert shift.orders == 12
    assert shift.hours == pytest.approx(4.5)
    assert shift.total_costs == pytest.approx(40 * 0.2 + 3)
    assert shift.net == pytest.approx(80.5 - 11.0)
    assert shift.hourly == pytest.approx(69.5 / 4.5)

def test_compute_shift_unparsable_numbers_default_to_zero():
    inputs = {
        "date": "2024-03-04", "startTime": "18:00", "endTime": "22:00",
        "orders": "viele", "earnings": "", "distance": None, "parking": "gratis",
    }
    shift = compute_shift(inputs, Settings(), 1)

    assert shift.orders == 0
    assert shift.earnings == 0.0
    assert shift.total_costs == 0.0
    assert shift.net == 0.0
    assert shift.hourly == 0.0

def test_compute_shift_net_can_be_negative():
    inputs = {"date": "2024-03-04", "startTime": "10:00", "endTime": "12:00",
              "earnings": "5", "distance": "100", "parking": "4"}
    shift = compute_shift(inputs, Settings(fuel_cost_per_km=0.15), 1)

    assert shift.net == pytest.approx(5 - (15 + 4))
    assert shift.hourly == pytest.approx(shift.net / 2)

@pytest.mark.parametrize("missing", ["date", "startTime", "endTime"])
def test_compute_shift_requires_date_and_times(missing):
    inputs = {"date": "2024-03-04", "startTime": "10:00", "endTime": "12:00"}
    inputs[missing] = ""
    with pytest.raises(ValidationError):
        compute_shift(inputs, Settings(), 1)

def test_compute_shift_rejects_invalid_date():
    with pytest.raises(InvalidInput):
        compute_shift({"date": "04.03.2024", "startTime": "10:00", "endTime": "12:00"}, Settings(), 1)

@pytest.mark.parametrize("field", ["orders", "earnings", "distance", "parking"])
def test_compute_shift_rejects_negative_values(field):
    inputs = {"date": "2024-03-04", "startTime": "10:00", "endTime": "12:00", field: "-3"}
    with pytest.raises(InvalidInput):
        compute_shift(inputs, Settings(), 1)

def test_recompute_reproduces_stored_values():
    inputs = {"date": "2024-03-04", "startTime": "21:10", "endTime": "02:40",
              "orders": "9", "earnings": "73.2", "distance": "58.3", "parking": "1.5"}
    settings = Settings(fuel_cost_per_km=0.17)
    shift = compute_shift(inputs, settings, 1)
    stored = shift.to_dict()

    assert recompute_shift(shift, settings).to_dict() == stored
    assert stored["totalCosts"] == stored["distance"] * 0.17 + stored["parking"]
    assert stored["net"] == stored["earnings"] - stored["totalCosts"]
    assert stored["hourly"] == stored["net"] / stored["hours"]

def test_check_derived_fields_accepts_computed_shift():
    inputs = {"date": "2024-03-04", "startTime": "22:15", "endTime": "01:45",
              "orders": "6", "earnings": "47.3", "distance": "31.7", "parking": "0.5"}
    shift = compute_shift(inputs, Settings(fuel_cost_per_km=0.19), 1)
    assert check_derived_fields(shift) is shift

@pytest.mark.parametrize("field, value", [
    ("hours", 0.0),
    ("hours", 5.0),
    ("net", 0.0),
    ("hourly", 1.0),
])
def test_check_derived_fields_rejects_mismatch(field, value):
    inputs = {"date": "2024-03-04", "startTime": "10:00", "endTime": "14:00", "earnings": "60"}
    shift = compute_shift(inputs, Settings(), 1)
    setattr(shift, field, value)
    with pytest.raises(InvalidInput):
        check_derived_fields(shift)

# --- 5. Tests für next_shift_id ---

def test_next_shift_id_uses_timestamp():
    assert next_shift_id([], 1700000000000) == 1700000000000

def test_next_shift_id_stays_unique_for_same_timestamp():
    assert next_shift_id([1700000000000], 1700000000000) == 1700000000001

def test_next_shift_id_when_clock_goes_backwards():
    assert next_shift_id([1700000000500, 1700000000100], 1700000000000) == 1700000000501

# --- 6. Tests für iso_week ---

@pytest.mark.parametrize("day, expected", [
    ("2024-01-01", 1),
    ("2023-01-01", 52),   # Sonntag, gehört noch zum Vorjahr
    ("2020-12-31", 53),
    ("2021-01-03", 53),
    ("2024-12-30", 1),    # Montag, gehört schon zu 2025
    ("2026-01-01", 1),
    ("2027-01-01", 53),
    ("2024-06-15", 24),
    (date(2024, 1, 7), 1),
])
def test_iso_week(day, expected):
    assert iso_week(day) == expected

# --- 7. Tests für summarize_week ---

def test_summarize_week_empty():
    summary = summarize_week([], date(2024, 1, 10))

    assert summary.week == 2
    assert summary.hours == 0.0
    assert summary.orders == 0
    assert summary.net == 0.0
    assert summary.hourly == 0.0

def test_summarize_week_only_counts_current_week():
    shifts = [
        make_shift(3, "2024-01-08", hours=4.0, orders=6, net=60.0),    # KW 2
        make_shift(1, "2024-01-14", hours=2.0, orders=3, net=20.0),    # KW 2 (Sonntag)
        make_shift(2, "2024-01-15", hours=8.0, orders=20, net=200.0),  # KW 3
        make_shift(4, "2024-01-07", hours=5.0, orders=7, net=70.0),    # KW 1
    ]
    summary = summarize_week(shifts, date(2024, 1, 10))

    assert summary.week == 2
    assert summary.hours == pytest.approx(6.0)
    assert summary.orders == 9
    assert summary.net == pytest.approx(80.0)
    assert summary.hourly == pytest.approx(80.0 / 6.0)

def test_summarize_week_does_not_touch_input():
    shifts = [make_shift(2, "2024-01-15"), make_shift(1, "2024-01-08")]
    before = [s.to_dict() for s in shifts]
    summarize_week(shifts, date(2024, 1, 10))
    assert [s.to_dict() for s in shifts] == before

# --- 8. Tests für order_for_display ---

def test_order_for_display_sorts_by_id_not_date():
    a = make_shift(100, "2024-01-20")
    b = make_shift(200, "2024-01-05")   # nachgetragen
    c = make_shift(300, "2024-01-12")

    assert [s.id for s in order_for_display([a, b, c])] == [300, 200, 100]
    assert [s.id for s in order_for_display([b, c, a])] == [300, 200, 100]
