# path: route-replay-api/app/config.py

import os

SERVICE_VERSION = "0.3.0"

# ---- Road routing (OSRM-compatible) ----
ROUTING_BASE_URL = os.getenv("ROUTING_BASE_URL", "https://routing.openstreetmap.de/routed-car")
ROUTING_PROFILE = os.getenv("ROUTING_PROFILE", "driving")
ROUTING_TIMEOUT_S = float(os.getenv("ROUTING_TIMEOUT_S", "5.0"))

# ---- Playback ----
FRAME_HZ = 30
STREAM_HZ = 15
DEFAULT_SPEED = 1.0
SPEED_MIN = 0.5
SPEED_MAX = 10.0

# ---- Logging ----
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
