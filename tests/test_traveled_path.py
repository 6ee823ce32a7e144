import pytest

from app.services.interpolator import interpolate
from app.services.leg_geometry import build_leg_geometry_table
from app.services.timeline import build_timeline
from app.services.traveled_path import build_traveled_path, traveled_index


@pytest.fixture
def route(three_stops, snapped_legs):
    return build_timeline(three_stops), build_leg_geometry_table(three_stops, snapped_legs)


def test_empty_before_start(route):
    tl, table = route
    assert build_traveled_path(interpolate(0.0, tl, table), table) == ()


def test_prefix_plus_current_point(route):
    tl, table = route
    pose = interpolate(5.0, tl, table)  # leg 0, sub 1, weight 0.5
    path = build_traveled_path(pose, table)
    assert path[:-1] == table.flattened[:2]
    assert path[-1] == pose.coordinate


def test_no_extra_point_on_vertex(route):
    tl, table = route
    pose = interpolate(10.0, tl, table)  # end of leg 0
    assert pose.sub_fraction == 1.0
    assert build_traveled_path(pose, table) == table.flattened[:3]


def test_full_route_at_end(route):
    tl, table = route
    assert build_traveled_path(interpolate(tl.total_duration, tl, table), table) == table.flattened


def test_never_regresses(route):
    tl, table = route
    last_idx, last_len = -1, 0
    for k in range(601):
        pose = interpolate(tl.total_duration * k / 600, tl, table)
        idx = traveled_index(pose, table)
        path = build_traveled_path(pose, table)
        assert idx >= last_idx
        assert len(path) >= last_len - 1
        last_idx, last_len = idx, len(path)
