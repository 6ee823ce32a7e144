from datetime import datetime, timedelta, timezone

import pytest

from app.models.playback import Coordinate
from app.models.route_models import Waypoint

T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


def wp(lat, lon, seconds):
    return Waypoint(latitude=lat, longitude=lon, timestamp=T0 + timedelta(seconds=seconds))


@pytest.fixture
def three_stops():
    # t=0, 10s, 30s
    return [
        wp(52.5200, 13.4050, 0),
        wp(52.5210, 13.4070, 10),
        wp(52.5230, 13.4100, 30),
    ]


@pytest.fixture
def snapped_legs(three_stops):
    a, b, c = (w.coordinate for w in three_stops)
    leg0 = [a, Coordinate(52.5203, 13.4058), Coordinate(52.5207, 13.4064), b]
    leg1 = [b, Coordinate(52.5220, 13.4080), c]
    return [leg0, leg1]
