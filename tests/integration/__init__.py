"""Live-upstream checks for OpenSky, Nominatim, Planespotters and Wikipedia.

Off unless ``INTEGRATION_TESTS`` is set.  Anonymous OpenSky quota is small,
so keep these out of CI.
"""
