# path: route-replay-api/app/api/deps.py
"""
Dependency injection for API routes.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from app.services.road_router import RoadRouter
from app.services.route_player import RoutePlayer


class PlayerRegistry:
    """Route players by route id. Lives for the process; nothing is persisted."""

    def __init__(self):
        self._players: Dict[str, RoutePlayer] = {}

    def add(self, route_id: str, player: RoutePlayer) -> None:
        self._players[route_id] = player

    def get(self, route_id: str) -> Optional[RoutePlayer]:
        return self._players.get(route_id)

    def stop_all(self) -> None:
        for player in self._players.values():
            player.pause()


_registry: Optional[PlayerRegistry] = None


def get_registry() -> PlayerRegistry:
    global _registry
    if _registry is None:
        _registry = PlayerRegistry()
    return _registry


def set_registry(registry: PlayerRegistry) -> None:
    global _registry
    _registry = registry


@lru_cache(maxsize=1)
def get_road_router() -> RoadRouter:
    return RoadRouter()
