"""
airlines.py
~~~~~~~~~~~
Single source of truth for the ICAO carrier codes we prettify.

Best-effort and cosmetic: anything not listed is shown as the raw code.
"""

from __future__ import annotations

from typing import Final

AIRLINE_NAMES: Final[dict[str, str]] = {
    # ───────────── North America
    "AAL": "American Airlines",
    "UAL": "United Airlines",
    "DAL": "Delta Air Lines",
    "SWA": "Southwest Airlines",
    "JBU": "JetBlue Airways",
    "ASA": "Alaska Airlines",
    "SKW": "SkyWest Airlines",
    "FFT": "Frontier Airlines",
    "NKS": "Spirit Airlines",
    "ACA": "Air Canada",
    # ───────────── Europe
    "BAW": "British Airways",
    "AFR": "Air France",
    "DLH": "Lufthansa",
    "KLM": "KLM Royal Dutch Airlines",
    "IBE": "Iberia",
    "SAS": "Scandinavian Airlines",
    "TAP": "TAP Air Portugal",
    "THY": "Turkish Airlines",
    # ───────────── Middle East / Asia-Pacific
    "UAE": "Emirates",
    "QTR": "Qatar Airways",
    "SIA": "Singapore Airlines",
    "ANA": "All Nippon Airways",
    "JAL": "Japan Airlines",
    "CPA": "Cathay Pacific",
    "QFA": "Qantas",
    "AAR": "Asiana Airlines",
    "CCA": "Air China",
    "CSN": "China Southern Airlines",
    "CES": "China Eastern Airlines",
}


def resolve_airline(code: str | None) -> str | None:
    """Return the carrier name for *code*, the code itself if unknown, or None."""
    if not code or not code.strip():
        return None
    code = code.strip()
    return AIRLINE_NAMES.get(code.upper(), code)


def airline_from_callsign(callsign: str | None) -> str | None:
    """
    Guess the carrier from an ICAO callsign such as ``"BAW123"``.

    Only the three-letter alphabetic prefix counts; private registrations
    used as callsigns (``"N757AF"``) yield None.
    """
    if not callsign:
        return None
    prefix = callsign.strip()[:3]
    if len(prefix) != 3 or not prefix.isalpha() or len(callsign.strip()) < 4:
        return None
    if not callsign.strip()[3].isdigit():
        return None
    return resolve_airline(prefix)
