"""AstroPhi - remote control service for a tethered camera.

Exposes shooting, preview, single exposures and astrometric plate solving
over HTTP. See ``astrophi.server`` for the entry point.
"""

__version__ = "0.1.0"
