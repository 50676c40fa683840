"""resolver.py
~~~~~~~~~~~~~
Find the airborne aircraft closest to a query point.

:func:`resolve_nearest` is the pure arg-min over one snapshot.
:class:`NearestFlightFinder` adds the upstream fetch and, for providers that
accept a bounding box, a widening search that never drops the true nearest
aircraft.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Sequence

from .constants import SEARCH_RADII_KM
from .errors import NotFoundError
from .geo import bounding_box
from .live_state_service import LiveStateProvider
from .models import CanonicalFlight, GeoPoint, RawStateRecord
from .normalizer import normalize

LOG = logging.getLogger("resolver")


def resolve_nearest(
    point: GeoPoint, raw_states: Iterable[RawStateRecord]
) -> CanonicalFlight | None:
    """
    Return the closest airborne flight to *point*, or None.

    Records without a position and records flagged on-ground are skipped.
    On equal distances the first record in upstream order wins; that falls
    out of the strict ``<`` and carries no meaning of its own.
    """
    nearest: CanonicalFlight | None = None
    min_distance = math.inf

    for raw in raw_states:
        flight = normalize(raw, origin=point)
        if flight is None or flight.on_ground:
            continue
        if flight.distance_km < min_distance:
            min_distance = flight.distance_km
            nearest = flight

    return nearest


def find_nearest(
    point: GeoPoint, raw_states: Sequence[RawStateRecord]
) -> CanonicalFlight:
    """Like :func:`resolve_nearest` but raises :class:`NotFoundError`."""
    if not raw_states:
        raise NotFoundError("No flights found")
    flight = resolve_nearest(point, raw_states)
    if flight is None:
        raise NotFoundError("No flights found in the air")
    return flight


class NearestFlightFinder:
    """Fetch live states from *provider* and resolve the nearest flight."""

    def __init__(
        self,
        provider: LiveStateProvider,
        radii_km: Sequence[float] = SEARCH_RADII_KM,
    ) -> None:
        self.provider = provider
        self.radii_km = tuple(sorted(radii_km))

    async def find(self, point: GeoPoint) -> CanonicalFlight:
        """
        Raises:
            UpstreamError: the live-state fetch failed (not retried).
            NotFoundError: no airborne traffic in the snapshot.
        """
        if self.provider.supports_bbox:
            for radius in self.radii_km:
                states = await self.provider.fetch_live_states(
                    bounding_box(point, radius)
                )
                flight = resolve_nearest(point, states)
                # Anything closer than *radius* lies inside the box, so a hit
                # within the radius is the global minimum.
                if flight is not None and flight.distance_km <= radius:
                    LOG.info(
                        "Nearest %s at %.2f km (radius %.0f km)",
                        flight.callsign,
                        flight.distance_km,
                        radius,
                    )
                    return flight
                LOG.debug("Nothing conclusive within %.0f km – widening", radius)

        states = await self.provider.fetch_live_states(None)
        flight = find_nearest(point, states)
        LOG.info("Nearest %s at %.2f km (global)", flight.callsign, flight.distance_km)
        return flight
