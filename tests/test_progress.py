import pytest

from app.services.progress import build_progress, format_clock, leg_speed_kmh, route_index_at
from app.services.timeline import build_timeline
from app.utils.geo import haversine_m

from conftest import wp


@pytest.mark.parametrize("seconds,text", [(0, "0:00"), (5.9, "0:05"), (75, "1:15"), (3725, "1:02:05")])
def test_format_clock(seconds, text):
    assert format_clock(seconds) == text


def test_route_index_round_trips_seek():
    total, points = 37.0, 12
    for i in range(points):
        assert route_index_at(i / (points - 1) * total, total, points) == i


def test_leg_speed_uses_current_leg_and_clamps(three_stops):
    tl = build_timeline(three_stops)
    d0 = haversine_m(three_stops[0].coordinate, three_stops[1].coordinate)
    d1 = haversine_m(three_stops[1].coordinate, three_stops[2].coordinate)
    assert leg_speed_kmh(three_stops, tl, 1) == pytest.approx(d0 / 10 * 3.6, abs=0.01)
    # last stop reports the last leg
    assert leg_speed_kmh(three_stops, tl, 3) == pytest.approx(d1 / 20 * 3.6, abs=0.01)


def test_zero_duration_leg_speed():
    stops = [wp(0, 0, 0), wp(0, 0.01, 0), wp(0, 0.02, 10)]
    assert leg_speed_kmh(stops, build_timeline(stops), 1) == 0.0


def test_build_progress(three_stops):
    info = build_progress(15.0, build_timeline(three_stops), three_stops, 2)
    assert info.percent == pytest.approx(50.0)
    assert info.stop_number == 2 and info.stop_count == 3
    assert info.stop_latitude == three_stops[1].latitude
    assert info.stop_timestamp == three_stops[1].timestamp
