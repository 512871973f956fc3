from datetime import date

import pytest

from agency.models import Location, LocationSeasonalPeriod
from agency.seasons import (
    SEASONAL_TEMPLATES,
    check_year_coverage,
    crosses_year,
    date_ranges_for_year,
    day_key,
    find_period_for_date,
    format_period,
    periods_overlap,
    seed_location_periods,
    template_for_location,
    validate_period,
)


def period(start, end, season_type="PEAK_SEASON", name="Season", **extra):
    return {
        "season_type": season_type,
        "name": name,
        "start_month": start[0],
        "start_day": start[1],
        "end_month": end[0],
        "end_day": end[1],
        **extra,
    }


def test_day_key_orders_calendar_days():
    assert day_key(4, 1) == 401
    assert day_key(12, 31) > day_key(1, 1)


def test_overlap_uses_raw_day_keys():
    spring = period((3, 1), (5, 31))
    early_summer = period((5, 15), (7, 31))
    autumn = period((9, 1), (11, 30))

    assert periods_overlap(spring, early_summer)
    assert not periods_overlap(spring, autumn)


def test_date_ranges_split_at_year_end():
    winter = period((10, 1), (3, 31))
    assert crosses_year(winter)
    assert date_ranges_for_year(winter, 2024) == [
        (date(2024, 10, 1), date(2024, 12, 31)),
        (date(2025, 1, 1), date(2025, 3, 31)),
    ]


def test_date_ranges_clamp_feb_29_outside_leap_years():
    beach_peak = period((12, 1), (2, 29))
    ranges = date_ranges_for_year(beach_peak, 2025)
    assert ranges[-1].end == date(2026, 2, 28)


def test_find_period_for_date_handles_year_crossing():
    winter = period((10, 1), (3, 31), name="Winter")
    summer = period((4, 1), (9, 30), name="Summer")

    assert find_period_for_date(date(2025, 1, 15), [summer, winter])["name"] == "Winter"
    assert find_period_for_date(date(2025, 6, 1), [summer, winter])["name"] == "Summer"
    assert find_period_for_date(date(2025, 6, 1), [winter]) is None


def test_validate_period_reports_each_problem():
    errors = validate_period(
        {
            "season_type": "MONSOON",
            "name": " ",
            "start_month": 13,
            "start_day": 1,
            "end_month": 2,
            "end_day": 32,
        }
    )
    assert "Invalid season type" in errors
    assert "Season name is required" in errors
    assert "Start month must be between 1 and 12" in errors
    assert "End day must be between 1 and 31" in errors
    assert validate_period(period((4, 1), (6, 30))) == []


def test_format_period():
    assert format_period(period((4, 1), (6, 30))) == "Apr 1 - Jun 30"


def test_desert_template_covers_the_whole_year():
    desert = SEASONAL_TEMPLATES["DESERT_DESTINATION"]
    is_complete, gaps, overlaps = check_year_coverage(desert)
    assert is_complete
    assert overlaps == []
    assert gaps == []


def test_coverage_reports_gaps_and_ignores_inactive():
    periods = [
        period((1, 1), (5, 31)),
        period((7, 1), (12, 31)),
        period((5, 1), (8, 31), is_active=False),
    ]
    is_complete, gaps, overlaps = check_year_coverage(periods)
    assert is_complete
    assert overlaps == []
    assert [(g.start, g.end) for g in gaps] == [((6, 1), (6, 30))]


def test_coverage_incomplete_without_active_periods_or_with_overlap():
    assert check_year_coverage([])[0] is False
    is_complete, _gaps, overlaps = check_year_coverage(
        [period((1, 1), (6, 30)), period((6, 1), (12, 31))]
    )
    assert not is_complete
    assert len(overlaps) == 1


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Goa", "BEACH_DESTINATION"),
        ("Manali", "HILL_STATION"),
        ("north goa", "BEACH_DESTINATION"),
        ("Jaisalmer Dunes", "DESERT_DESTINATION"),
        ("Mount Abu", "HILL_STATION"),
        ("Atlantis", "CULTURAL_CITY"),
        ("", "CULTURAL_CITY"),
    ],
)
def test_template_for_location(label, expected):
    assert template_for_location(label) == expected


@pytest.mark.django_db
def test_seed_location_periods_is_skipped_when_periods_exist():
    goa = Location.objects.create(label="Goa")
    assert seed_location_periods(goa) == 3
    assert set(goa.seasonal_periods.values_list("season_type", flat=True)) == {
        "PEAK_SEASON",
        "SHOULDER_SEASON",
        "OFF_SEASON",
    }
    assert seed_location_periods(goa) == 0
    assert LocationSeasonalPeriod.objects.filter(location=goa).count() == 3
