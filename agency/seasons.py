# agency/seasons.py
"""
Seasonal period helpers.

A period is any object (model instance or dict) exposing ``start_month``,
``start_day``, ``end_month`` and ``end_day``. Periods whose start comes after
their end (e.g. Oct 1 - Mar 31) cross the year boundary.
"""

import calendar
import logging
from collections import namedtuple
from datetime import date, timedelta

from .constants import OFF_SEASON, PEAK_SEASON, SEASON_TYPES, SHOULDER_SEASON

logger = logging.getLogger(__name__)

MONTH_ABBR = [calendar.month_abbr[m] for m in range(1, 13)]
DEFAULT_TEMPLATE = "CULTURAL_CITY"

DateRange = namedtuple("DateRange", ["start", "end"])
Gap = namedtuple("Gap", ["start", "end"])  # (month, day) pairs


def _tpl(season_type, name, start, end, description):
    return {
        "season_type": season_type,
        "name": name,
        "start_month": start[0],
        "start_day": start[1],
        "end_month": end[0],
        "end_day": end[1],
        "description": description,
    }


# --- TEMPLATES ---
SEASONAL_TEMPLATES = {
    "HILL_STATION": [
        _tpl(PEAK_SEASON, "Summer Peak Season", (4, 1), (6, 30),
             "Pleasant weather, escape from heat, highest demand"),
        _tpl(SHOULDER_SEASON, "Winter Pleasant Season", (10, 1), (3, 31),
             "Cool weather, moderate demand, some snow in higher regions"),
        _tpl(OFF_SEASON, "Monsoon Off Season", (7, 1), (9, 30),
             "Monsoon season with limited accessibility"),
    ],
    "BEACH_DESTINATION": [
        _tpl(PEAK_SEASON, "Winter Peak Season", (12, 1), (2, 28),
             "Perfect weather for beach holidays, highest demand and pricing"),
        _tpl(SHOULDER_SEASON, "Pleasant Season", (3, 1), (5, 31),
             "Good weather with moderate demand and pricing"),
        _tpl(OFF_SEASON, "Monsoon Off Season", (6, 1), (11, 30),
             "Monsoon and hot weather, lowest prices"),
    ],
    "DESERT_DESTINATION": [
        _tpl(PEAK_SEASON, "Winter Peak Season", (11, 1), (2, 28),
             "Pleasant weather, ideal for desert tourism"),
        _tpl(SHOULDER_SEASON, "Spring/Autumn Season", (3, 1), (4, 30),
             "Moderately warm weather, good for sightseeing"),
        _tpl(OFF_SEASON, "Summer Off Season", (5, 1), (10, 31),
             "Very hot weather, minimal tourism"),
    ],
    "CULTURAL_CITY": [
        _tpl(PEAK_SEASON, "Winter Peak Season", (10, 1), (3, 31),
             "Pleasant weather for sightseeing and cultural activities"),
        _tpl(SHOULDER_SEASON, "Spring/Summer Season", (4, 1), (6, 30),
             "Warm weather, moderate demand"),
        _tpl(OFF_SEASON, "Monsoon Off Season", (7, 1), (9, 30),
             "Monsoon season, reduced outdoor activities"),
    ],
}

# Insertion order matters: partial matches take the first hit.
LOCATION_TEMPLATE_MAP = {
    # Beach
    "Goa": "BEACH_DESTINATION",
    "Kerala": "BEACH_DESTINATION",
    "Andaman": "BEACH_DESTINATION",
    "Lakshadweep": "BEACH_DESTINATION",
    "Mumbai": "BEACH_DESTINATION",
    "Chennai": "BEACH_DESTINATION",
    "Puri": "BEACH_DESTINATION",
    "Pondicherry": "BEACH_DESTINATION",
    "Daman": "BEACH_DESTINATION",
    "Diu": "BEACH_DESTINATION",
    # Hill stations
    "Himachal Pradesh": "HILL_STATION",
    "Manali": "HILL_STATION",
    "Shimla": "HILL_STATION",
    "Dharamshala": "HILL_STATION",
    "Kullu": "HILL_STATION",
    "Uttarakhand": "HILL_STATION",
    "Nainital": "HILL_STATION",
    "Mussoorie": "HILL_STATION",
    "Rishikesh": "HILL_STATION",
    "Haridwar": "HILL_STATION",
    "Darjeeling": "HILL_STATION",
    "Sikkim": "HILL_STATION",
    "Gangtok": "HILL_STATION",
    "Ooty": "HILL_STATION",
    "Kodaikanal": "HILL_STATION",
    "Munnar": "HILL_STATION",
    "Coorg": "HILL_STATION",
    "Leh Ladakh": "HILL_STATION",
    "Kashmir": "HILL_STATION",
    "Srinagar": "HILL_STATION",
    "Gulmarg": "HILL_STATION",
    "Pahalgam": "HILL_STATION",
    # Desert
    "Rajasthan": "DESERT_DESTINATION",
    "Jaisalmer": "DESERT_DESTINATION",
    "Jodhpur": "DESERT_DESTINATION",
    "Bikaner": "DESERT_DESTINATION",
    "Pushkar": "DESERT_DESTINATION",
    "Mount Abu": "HILL_STATION",  # hill station inside Rajasthan
    # Cultural cities
    "Delhi": "CULTURAL_CITY",
    "Agra": "CULTURAL_CITY",
    "Jaipur": "CULTURAL_CITY",
    "Udaipur": "CULTURAL_CITY",
    "Varanasi": "CULTURAL_CITY",
    "Kolkata": "CULTURAL_CITY",
    "Hyderabad": "CULTURAL_CITY",
    "Bangalore": "CULTURAL_CITY",
    "Pune": "CULTURAL_CITY",
    "Ahmedabad": "CULTURAL_CITY",
    "Lucknow": "CULTURAL_CITY",
    "Mysore": "CULTURAL_CITY",
    "Amritsar": "CULTURAL_CITY",
    "Chandigarh": "CULTURAL_CITY",
    "Kochi": "CULTURAL_CITY",
    "Madurai": "CULTURAL_CITY",
    "Tirupati": "CULTURAL_CITY",
    "Rameswaram": "CULTURAL_CITY",
    "Thanjavur": "CULTURAL_CITY",
}


def _get(period, name, default=None):
    if isinstance(period, dict):
        return period.get(name, default)
    return getattr(period, name, default)


def day_key(month, day):
    """Comparable key for a calendar day: Apr 1 -> 401."""
    return month * 100 + day


def _keys(period):
    return (
        day_key(_get(period, "start_month"), _get(period, "start_day")),
        day_key(_get(period, "end_month"), _get(period, "end_day")),
    )


def crosses_year(period):
    start, end = _keys(period)
    return start > end


def periods_overlap(a, b):
    # Raw key comparison; year-crossing periods are not unwrapped here.
    start_a, end_a = _keys(a)
    start_b, end_b = _keys(b)
    return start_a <= end_b and end_a >= start_b


def _safe_date(year, month, day):
    # Feb 29 / Apr 31 style ends clamp to the last day of that month.
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last))


def date_ranges_for_year(period, year):
    """Concrete date ranges a period covers when it starts in ``year``."""
    start_m, start_d = _get(period, "start_month"), _get(period, "start_day")
    end_m, end_d = _get(period, "end_month"), _get(period, "end_day")

    if start_m <= end_m:
        return [
            DateRange(
                _safe_date(year, start_m, start_d), _safe_date(year, end_m, end_d)
            )
        ]

    return [
        DateRange(_safe_date(year, start_m, start_d), date(year, 12, 31)),
        DateRange(date(year + 1, 1, 1), _safe_date(year + 1, end_m, end_d)),
    ]


def period_contains(period, value):
    key = day_key(value.month, value.day)
    start, end = _keys(period)
    if start <= end:
        return start <= key <= end
    return key >= start or key <= end


def find_period_for_date(value, periods):
    for period in periods:
        if period_contains(period, value):
            return period
    return None


def validate_period(data):
    """Returns a list of human readable problems; empty when valid."""
    errors = []
    valid_types = [code for code, _label in SEASON_TYPES]

    if _get(data, "season_type") not in valid_types:
        errors.append("Invalid season type")

    name = _get(data, "name") or ""
    if not str(name).strip():
        errors.append("Season name is required")

    for field, label, upper in (
        ("start_month", "Start month", 12),
        ("end_month", "End month", 12),
        ("start_day", "Start day", 31),
        ("end_day", "End day", 31),
    ):
        try:
            value = int(_get(data, field) or 0)
        except (TypeError, ValueError):
            value = 0
        if value < 1 or value > upper:
            errors.append(f"{label} must be between 1 and {upper}")

    return errors


def format_period(period):
    return "{} {} - {} {}".format(
        MONTH_ABBR[_get(period, "start_month") - 1],
        _get(period, "start_day"),
        MONTH_ABBR[_get(period, "end_month") - 1],
        _get(period, "end_day"),
    )


def _find_gaps(periods):
    # Walk a non-leap reference year and collect uncovered day runs.
    gaps = []
    current = date(2023, 1, 1)
    gap_start = None
    while current.year == 2023:
        covered = any(period_contains(p, current) for p in periods)
        if not covered and gap_start is None:
            gap_start = current
        elif covered and gap_start is not None:
            prev = current - timedelta(days=1)
            gaps.append(Gap((gap_start.month, gap_start.day), (prev.month, prev.day)))
            gap_start = None
        current += timedelta(days=1)
    if gap_start is not None:
        gaps.append(Gap((gap_start.month, gap_start.day), (12, 31)))
    return gaps


def check_year_coverage(periods):
    """
    Returns ``(is_complete, gaps, overlaps)`` for the active periods.

    Completeness only requires at least one active period and no overlapping
    pair; gaps are reported for information.
    """
    active = [p for p in periods if _get(p, "is_active", True)]

    overlaps = []
    for i, first in enumerate(active):
        for second in active[i + 1:]:
            if periods_overlap(first, second):
                overlaps.append((first, second))

    gaps = _find_gaps(active) if active else []
    is_complete = bool(active) and not overlaps
    return is_complete, gaps, overlaps


def template_for_location(label):
    """Template key for a location label; CULTURAL_CITY when nothing matches."""
    label = (label or "").strip()
    if not label:
        return DEFAULT_TEMPLATE

    if label in LOCATION_TEMPLATE_MAP:
        return LOCATION_TEMPLATE_MAP[label]

    lowered = label.lower()
    for pattern, template in LOCATION_TEMPLATE_MAP.items():
        pattern = pattern.lower()
        if pattern in lowered or lowered in pattern:
            return template

    return DEFAULT_TEMPLATE


def seed_location_periods(location):
    """
    Creates the template periods for ``location``.
    Locations that already have periods are left alone. Returns the number
    of periods created.
    """
    from .models import LocationSeasonalPeriod

    existing = location.seasonal_periods.count()
    if existing:
        logger.info(
            "Skipping %s: already has %s seasonal periods", location.label, existing
        )
        return 0

    template_key = template_for_location(location.label)
    LocationSeasonalPeriod.objects.bulk_create(
        [
            LocationSeasonalPeriod(location=location, **period)
            for period in SEASONAL_TEMPLATES[template_key]
        ]
    )
    logger.info("Seeded %s with %s template", location.label, template_key)
    return len(SEASONAL_TEMPLATES[template_key])
