"""
Time zone resolution for callers of the engine.

The engine itself only ever sees a LocalZone (an offset and a DST flag for
one date). This adapter turns an IANA name into that value using pytz.
"""

import logging
from datetime import date, datetime, time

import pytz

from ..models import LocalZone

logger = logging.getLogger(__name__)


class PytzZoneResolver:
    """Resolve IANA zone names to a LocalZone for a given date."""

    def resolve(self, name: str, on_date: date) -> LocalZone:
        """
        Offset and DST state of ``name`` at local noon on ``on_date``.

        Noon avoids the ambiguous and missing hours around DST switches,
        which happen at night in every zone that observes them.

        Raises:
            ValueError: Unknown zone name
        """
        try:
            tz = pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown time zone: {name}")

        local_noon = tz.localize(datetime.combine(on_date, time(12)))
        return LocalZone(
            utc_offset=local_noon.utcoffset(),
            is_dst=bool(local_noon.dst()),
            name=name,
        )


# Singleton instance
_resolver = PytzZoneResolver()


def resolve_zone(name: str, on_date: date) -> LocalZone:
    """Module-level shortcut for PytzZoneResolver.resolve."""
    return _resolver.resolve(name, on_date)
