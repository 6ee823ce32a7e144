# path: route-replay-api/app/services/road_router.py

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import List, Optional, Sequence

import requests

from app import config as C
from app.errors import GeometryFetchError
from app.models.playback import Coordinate
from app.models.route_models import Waypoint

logger = logging.getLogger(__name__)


class RoadRouter:
    """Client for an OSRM-compatible /route endpoint, one request per leg."""

    def __init__(
        self,
        base_url: str = C.ROUTING_BASE_URL,
        profile: str = C.ROUTING_PROFILE,
        timeout_s: float = C.ROUTING_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout_s = timeout_s
        self.session = session

    def leg_url(self, start: Waypoint, end: Waypoint) -> str:
        a = f"{start.longitude},{start.latitude}"
        b = f"{end.longitude},{end.latitude}"
        return f"{self.base_url}/route/v1/{self.profile}/{a};{b}?overview=full&geometries=geojson"

    def fetch_leg(self, leg_index: int, start: Waypoint, end: Waypoint) -> List[Coordinate]:
        """Blocking fetch of one leg. Raises GeometryFetchError on any failure."""
        # one worker thread per leg, so no Session is shared unless one was injected
        get = self.session.get if self.session is not None else requests.get
        try:
            r = get(self.leg_url(start, end), timeout=self.timeout_s)
            r.raise_for_status()
            data = r.json()
        except requests.RequestException as e:
            raise GeometryFetchError(leg_index, str(e)) from e
        except ValueError as e:
            raise GeometryFetchError(leg_index, f"invalid JSON: {e}") from e

        routes = data.get("routes") if isinstance(data, dict) else None
        if not routes:
            raise GeometryFetchError(leg_index, f"no route in response (code={data.get('code') if isinstance(data, dict) else None})")
        try:
            coords = routes[0]["geometry"]["coordinates"]
            return [Coordinate(lat=float(lat), lon=float(lon)) for lon, lat in coords]
        except (KeyError, TypeError, ValueError) as e:
            raise GeometryFetchError(leg_index, f"malformed geometry: {e}") from e

    async def fetch_leg_or_none(
        self,
        leg_index: int,
        start: Waypoint,
        end: Waypoint,
        executor: Optional[Executor] = None,
    ) -> Optional[List[Coordinate]]:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(executor, self.fetch_leg, leg_index, start, end),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Timeout for leg %d after %.1fs, using straight line", leg_index, self.timeout_s)
        except GeometryFetchError as e:
            logger.warning("Failed to fetch leg %d (%s), using straight line", leg_index, e.reason)
        return None

    async def fetch_legs(self, waypoints: Sequence[Waypoint]) -> List[Optional[List[Coordinate]]]:
        """
        Request every leg concurrently and wait for all of them.

        Entry i is the road geometry for leg i, or None where that leg failed
        or timed out. Legs fail independently of each other. Each leg gets its
        own worker thread, so the timeout never counts time spent queued.
        """
        if len(waypoints) < 2:
            return []
        leg_count = len(waypoints) - 1
        executor = ThreadPoolExecutor(max_workers=leg_count, thread_name_prefix="road-router")
        try:
            results = await asyncio.gather(
                *(
                    self.fetch_leg_or_none(i, waypoints[i], waypoints[i + 1], executor)
                    for i in range(leg_count)
                )
            )
        finally:
            # timed-out requests finish on their own, bounded by the requests timeout
            executor.shutdown(wait=False)
        ok = sum(1 for r in results if r is not None)
        logger.info("Road geometry: %d/%d legs snapped", ok, len(results))
        return list(results)
