"""Timestamp parsing and localization for Folio.

Document headers carry publication timestamps in several shapes: YAML and
TOML parsers hand back ``datetime`` or ``date`` objects, quoted values arrive
as strings. Everything is normalized to a timezone-aware pendulum DateTime.

Rendering localizes timestamps to the site timezone. Without one, output
falls back to UTC.
"""

from __future__ import annotations

from datetime import date, datetime, tzinfo

import pendulum

UTC_NAME = "UTC"


def get_timezone(name: str) -> tzinfo:
    """Return the tzinfo for an IANA timezone name.

    Raises:
        ValueError: If the name is not a known timezone.
    """
    try:
        return pendulum.timezone(name)
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name!r}") from exc


def parse_timestamp(value: object, default_tz: str | None = None) -> pendulum.DateTime:
    """Parse a header value into a timezone-aware DateTime.

    Accepts datetimes, dates and ISO 8601 / RFC 3339 strings such as
    ``2021-04-10T13:17:49+12:00`` or ``2021-04-10``. Values without an
    offset are interpreted in ``default_tz`` (UTC when not given).

    Raises:
        ValueError: If the value is missing or cannot be read as a timestamp.
    """
    tz = default_tz or UTC_NAME
    if isinstance(value, datetime):
        return pendulum.instance(value, tz=tz)
    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day, tz=tz)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"expected a timestamp, got {value!r}")

    try:
        # strict keeps to ISO 8601, so no field is filled in from today
        parsed = pendulum.parse(value.strip(), tz=tz, strict=True)
    except OverflowError as exc:
        raise ValueError(f"timestamp out of range: {value!r}") from exc
    if isinstance(parsed, pendulum.DateTime):
        return parsed
    if isinstance(parsed, pendulum.Date):
        return pendulum.datetime(parsed.year, parsed.month, parsed.day, tz=tz)
    raise ValueError(f"expected a timestamp, got {value!r}")


def localize(dt: datetime, tz_name: str | None) -> pendulum.DateTime:
    """Convert ``dt`` to the site timezone, or to UTC when none is configured."""
    return pendulum.instance(dt).in_timezone(tz_name or UTC_NAME)


def format_timestamp(dt: datetime, fmt: str, tz_name: str | None) -> str:
    """Format ``dt`` with a strftime pattern after localizing it."""
    return localize(dt, tz_name).strftime(fmt)


def isoformat(dt: datetime, tz_name: str | None) -> str:
    """RFC 3339 form of ``dt`` in the site timezone, for ``<time datetime>``."""
    return localize(dt, tz_name).isoformat()


def rfc822(dt: datetime) -> str:
    """RFC 822 form used by RSS ``pubDate``, always in UTC."""
    return localize(dt, UTC_NAME).strftime("%a, %d %b %Y %H:%M:%S +0000")


def now(tz_name: str | None) -> pendulum.DateTime:
    """Current time in the site timezone, to the second."""
    return pendulum.now(tz_name or UTC_NAME).replace(microsecond=0)
