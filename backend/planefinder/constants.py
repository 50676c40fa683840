# backend/planefinder/constants.py

"""
Global constants and environment-driven settings shared across modules.

Everything here is read once at import time, after ``load_dotenv()`` has
merged a local ``.env`` file into the environment.
"""

from __future__ import annotations

import os
from typing import Final

from dotenv import load_dotenv

load_dotenv()

USER_AGENT: Final = "planefinder/1.0 (+https://github.com/planefinder/planefinder)"

# ── Upstream selection & credentials ────────────────────────────────────
FLIGHT_PROVIDER: Final = os.getenv("FLIGHT_PROVIDER", "opensky").strip().lower()
AIRLABS_API_KEY: Final = os.getenv("AIRLABS_API_KEY", "")
AVIATIONSTACK_API_KEY: Final = os.getenv("AVIATIONSTACK_API_KEY", "")
OPENSKY_USERNAME: Final = os.getenv("OPENSKY_USERNAME", "")
OPENSKY_PASSWORD: Final = os.getenv("OPENSKY_PASSWORD", "")

HTTP_TIMEOUT_S: Final[float] = float(os.getenv("HTTP_TIMEOUT_S", "10"))

# Comma-separated list; "*" keeps the API usable from any front-end.
ALLOWED_ORIGINS: Final[list[str]] = [
    o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()
]

# ── Cache policy (seconds) ──────────────────────────────────────────────
# Volatile position data must stay far below stable reference data.
NEAREST_TTL_S: Final[int] = 30
TRACK_TTL_S: Final[int] = 120
PHOTO_MISS_TTL_S: Final[int] = 3_600  # 1 h
GEOCODE_TTL_S: Final[int] = 86_400  # 24 h
REGISTRATION_TTL_S: Final[int] = 86_400
PHOTO_TTL_S: Final[int] = 604_800  # 7 d

CACHE_SWEEP_INTERVAL_S: Final[int] = int(os.getenv("CACHE_SWEEP_INTERVAL_S", "300"))

# ── Rate-limit policy: (max requests, window seconds) ───────────────────
FLIGHT_RATE: Final[tuple[int, int]] = (20, 60)
GEOCODE_RATE: Final[tuple[int, int]] = (30, 60)
TRACK_RATE: Final[tuple[int, int]] = (10, 60)

# ── Nearest-flight search radii (km) for bbox-capable providers ─────────
SEARCH_RADII_KM: Final[tuple[float, ...]] = (150.0, 600.0, 2_400.0)
