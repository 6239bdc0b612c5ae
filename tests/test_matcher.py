"""Tests for distance, time resolution and CollectionMatcher."""

import unittest
from datetime import datetime, time, timedelta
import sys
from pathlib import Path

# Add src to path so we can import garbagetrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from garbagetrack.geo import calculate_distance, directions_url, format_distance, parse_coordinates
from garbagetrack.matcher import CollectionMatcher
from garbagetrack.models import CollectionPoint, TimeWindow
from garbagetrack.timeutil import get_timezone, parse_time_of_day, resolve_arrival, to_local

TZ = get_timezone("Asia/Taipei")
NOW = datetime(2026, 10, 19, 20, 0, tzinfo=TZ)

USER_LAT = 25.0330
USER_LNG = 121.5654


def make_point(location, lat_offset=0.0, arrival="19:00", route_id="100-001", latitude=None):
    """Catalog row north of the user by ``lat_offset`` degrees."""
    return CollectionPoint(
        location=location,
        vehicle_number=route_id,
        route=f"Route {route_id}",
        latitude=latitude if latitude is not None else str(USER_LAT + lat_offset),
        longitude=str(USER_LNG),
        arrival_time=arrival,
    )


class TestGeo(unittest.TestCase):
    """Test distance helpers."""

    def test_distance_zero(self):
        self.assertEqual(calculate_distance(USER_LAT, USER_LNG, USER_LAT, USER_LNG), 0)

    def test_distance_one_degree_latitude(self):
        """One degree of latitude is about 111.2 km on a 6371 km sphere."""
        distance = calculate_distance(0, 0, 1, 0)
        self.assertAlmostEqual(distance, 111194.93, places=0)

    def test_distance_is_symmetric(self):
        a = calculate_distance(25.0330, 121.5654, 25.0478, 121.5170)
        b = calculate_distance(25.0478, 121.5170, 25.0330, 121.5654)
        self.assertAlmostEqual(a, b, places=6)

    def test_format_distance(self):
        self.assertEqual(format_distance(350.4), "約350公尺")
        self.assertEqual(format_distance(1234), "約1.2公里")

    def test_parse_coordinates(self):
        self.assertEqual(parse_coordinates(" 25.03 ", "121.56"), (25.03, 121.56))
        for lat, lng in [("nan", "121.5"), ("25.0", "inf"), ("-inf", "121.5"), ("90.5", "121.5"), ("25.0", "181")]:
            with self.assertRaises(ValueError):
                parse_coordinates(lat, lng)

    def test_directions_url(self):
        self.assertEqual(directions_url(25.5, 121.25), "https://maps.google.com/?q=25.500000,121.250000")


class TestTimeResolution(unittest.TestCase):
    """Test time-of-day parsing and rollover."""

    def test_parse_formats(self):
        self.assertEqual(parse_time_of_day("19:30"), time(19, 30))
        self.assertEqual(parse_time_of_day("1930"), time(19, 30))
        self.assertEqual(parse_time_of_day("7:05"), time(7, 5))
        self.assertEqual(parse_time_of_day(" 07:05:30 "), time(7, 5, 30))

    def test_parse_invalid(self):
        for value in ["", "abc", "25:00", "19:75", "19-30", None]:
            with self.assertRaises(ValueError, msg=value):
                parse_time_of_day(value)

    def test_future_time_stays_today(self):
        eta = resolve_arrival(time(21, 0), NOW)
        self.assertEqual(eta, datetime(2026, 10, 19, 21, 0, tzinfo=TZ))

    def test_past_time_rolls_to_tomorrow(self):
        eta = resolve_arrival(time(19, 0), NOW)
        self.assertEqual(eta, datetime(2026, 10, 20, 19, 0, tzinfo=TZ))

    def test_current_time_is_not_rolled(self):
        self.assertEqual(resolve_arrival(time(20, 0), NOW), NOW)

    def test_to_local_naive_is_taken_as_local(self):
        local = to_local(datetime(2026, 10, 19, 8, 0), TZ)
        self.assertEqual(local.utcoffset(), timedelta(hours=8))
        self.assertEqual(local.hour, 8)


class TestFindNearest(unittest.TestCase):
    """Test ranking by distance."""

    def setUp(self):
        self.matcher = CollectionMatcher(tz=TZ, clock=lambda: NOW)

    def test_limit_returns_closest(self):
        """Rows at ~500m and ~50m with limit 1 return only the 50m row."""
        catalog = [
            make_point("Far", lat_offset=0.0045),
            make_point("Near", lat_offset=0.00045),
        ]
        stops = self.matcher.find_nearest(USER_LAT, USER_LNG, catalog, limit=1)

        self.assertEqual(len(stops), 1)
        self.assertEqual(stops[0].stop_name, "Near")
        self.assertAlmostEqual(stops[0].distance, 50, delta=1)

    def test_sorted_by_distance(self):
        catalog = [make_point(f"P{i}", lat_offset=offset) for i, offset in enumerate([0.003, 0.001, 0.002, 0.0])]
        stops = self.matcher.find_nearest(USER_LAT, USER_LNG, catalog)

        distances = [s.distance for s in stops]
        self.assertEqual(distances, sorted(distances))
        self.assertEqual([s.stop_name for s in stops], ["P3", "P1", "P2", "P0"])

    def test_ties_keep_catalog_order(self):
        catalog = [make_point("First", 0.001), make_point("Second", 0.001), make_point("Third", 0.001)]
        stops = self.matcher.find_nearest(USER_LAT, USER_LNG, catalog)
        self.assertEqual([s.stop_name for s in stops], ["First", "Second", "Third"])

    def test_zero_limit_returns_all(self):
        catalog = [make_point(f"P{i}", i * 0.001) for i in range(4)]
        self.assertEqual(len(self.matcher.find_nearest(USER_LAT, USER_LNG, catalog, limit=0)), 4)

    def test_malformed_rows_are_skipped(self):
        catalog = [
            make_point("BadLat", latitude="not-a-number"),
            make_point("BadTime", arrival="25:99"),
            make_point("EmptyTime", arrival=""),
            make_point("NaNLat", latitude="nan"),
            make_point("InfLat", latitude="inf"),
            make_point("OutOfRange", latitude="91.0"),
            make_point("Good", 0.001),
        ]
        stops = self.matcher.find_nearest(USER_LAT, USER_LNG, catalog)
        self.assertEqual([s.stop_name for s in stops], ["Good"])

    def test_non_finite_rows_do_not_disturb_window_order(self):
        catalog = [
            make_point("Late", 0.001, arrival="21:00"),
            make_point("NaN", latitude="nan", arrival="20:30"),
            make_point("Early", 0.002, arrival="20:15"),
        ]
        stops = self.matcher.find_in_window(USER_LAT, USER_LNG, catalog)
        self.assertEqual([s.stop_name for s in stops], ["Early", "Late"])

    def test_nothing_parses_returns_empty(self):
        catalog = [make_point("Bad", latitude=""), make_point("Worse", arrival="x")]
        self.assertEqual(self.matcher.find_nearest(USER_LAT, USER_LNG, catalog), [])

    def test_eta_day_rollover(self):
        """A 19:00 row queried at 20:00 resolves to tomorrow 19:00."""
        catalog = [make_point("Past", 0.001, arrival="19:00"), make_point("Later", 0.002, arrival="2130")]
        stops = self.matcher.find_nearest(USER_LAT, USER_LNG, catalog)

        self.assertEqual(stops[0].eta, datetime(2026, 10, 20, 19, 0, tzinfo=TZ))
        self.assertEqual(stops[1].eta, datetime(2026, 10, 19, 21, 30, tzinfo=TZ))
        for stop in stops:
            self.assertGreaterEqual(stop.eta, NOW)

    def test_candidate_fields(self):
        point = make_point("Stop A", 0.001, route_id="KAA-123")
        stop = self.matcher.find_nearest(USER_LAT, USER_LNG, [point])[0]

        self.assertEqual(stop.route_id, "KAA-123")
        self.assertEqual(stop.route_name, "Route KAA-123")
        self.assertAlmostEqual(stop.latitude, USER_LAT + 0.001)
        self.assertAlmostEqual(stop.longitude, USER_LNG)
        self.assertIs(stop.point, point)

    def test_explicit_now_overrides_clock(self):
        morning = datetime(2026, 10, 19, 8, 0, tzinfo=TZ)
        stop = self.matcher.find_nearest(USER_LAT, USER_LNG, [make_point("A", arrival="19:00")], now=morning)[0]
        self.assertEqual(stop.eta, datetime(2026, 10, 19, 19, 0, tzinfo=TZ))


class TestFindInWindow(unittest.TestCase):
    """Test filtering by time window."""

    def setUp(self):
        self.matcher = CollectionMatcher(tz=TZ, clock=lambda: NOW)
        self.catalog = [
            make_point("Near-2230", 0.0005, arrival="22:30"),
            make_point("Far-2100", 0.05, arrival="21:00"),
            make_point("Mid-2115", 0.005, arrival="21:15"),
            make_point("Near-1900", 0.0001, arrival="19:00"),  # Tomorrow
        ]

    def test_unbounded_returns_all_sorted_by_arrival(self):
        stops = self.matcher.find_in_window(USER_LAT, USER_LNG, self.catalog, TimeWindow())

        self.assertEqual(
            [s.stop_name for s in stops],
            ["Far-2100", "Mid-2115", "Near-2230", "Near-1900"],
        )
        etas = [s.eta for s in stops]
        self.assertEqual(etas, sorted(etas))

    def test_none_window_matches_everything(self):
        self.assertEqual(len(self.matcher.find_in_window(USER_LAT, USER_LNG, self.catalog, None)), 4)

    def test_max_distance_excludes_far_rows(self):
        stops = self.matcher.find_in_window(USER_LAT, USER_LNG, self.catalog, TimeWindow(), max_distance=2000)
        self.assertNotIn("Far-2100", [s.stop_name for s in stops])
        self.assertEqual(len(stops), 3)

    def test_bounded_window_is_inclusive(self):
        window = TimeWindow(
            start=datetime(2026, 10, 19, 21, 0, tzinfo=TZ),
            end=datetime(2026, 10, 19, 22, 30, tzinfo=TZ),
        )
        stops = self.matcher.find_in_window(USER_LAT, USER_LNG, self.catalog, window)
        self.assertEqual([s.stop_name for s in stops], ["Far-2100", "Mid-2115", "Near-2230"])

    def test_bounded_window_excludes_outside(self):
        t1 = datetime(2026, 10, 19, 21, 10, tzinfo=TZ)
        t2 = datetime(2026, 10, 19, 22, 0, tzinfo=TZ)
        stops = self.matcher.find_in_window(USER_LAT, USER_LNG, self.catalog, TimeWindow(t1, t2))

        self.assertEqual([s.stop_name for s in stops], ["Mid-2115"])
        for stop in stops:
            self.assertTrue(t1 <= stop.eta <= t2)

    def test_open_ended_windows(self):
        after_22 = TimeWindow(start=datetime(2026, 10, 19, 22, 0, tzinfo=TZ))
        before_2130 = TimeWindow(end=datetime(2026, 10, 19, 21, 30, tzinfo=TZ))

        self.assertEqual(
            [s.stop_name for s in self.matcher.find_in_window(USER_LAT, USER_LNG, self.catalog, after_22)],
            ["Near-2230", "Near-1900"],
        )
        self.assertEqual(
            [s.stop_name for s in self.matcher.find_in_window(USER_LAT, USER_LNG, self.catalog, before_2130)],
            ["Far-2100", "Mid-2115"],
        )

    def test_naive_window_bounds_are_local(self):
        window = TimeWindow(start=datetime(2026, 10, 19, 22, 0), end=datetime(2026, 10, 19, 23, 0))
        stops = self.matcher.find_in_window(USER_LAT, USER_LNG, self.catalog, window)
        self.assertEqual([s.stop_name for s in stops], ["Near-2230"])


if __name__ == "__main__":
    unittest.main()
