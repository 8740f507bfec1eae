"""String format checkers used by the string schema."""

from __future__ import annotations

import binascii
import base64 as _base64
import calendar
import ipaddress
import re

EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL = re.compile(
    r"^https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*)$"
)
UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)
CUID = re.compile(r"^c[^\s-]{8,}$", re.IGNORECASE)
CUID2 = re.compile(r"^[a-z][a-z0-9]*$")
ULID = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$")
NANOID = re.compile(r"^[A-Za-z0-9_-]+$")
DURATION = re.compile(r"^P(?!$)(\d+Y)?(\d+M)?(\d+W)?(\d+D)?(T(?=\d)(\d+H)?(\d+M)?(\d+S)?)?$")

_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME = re.compile(r"^([01]\d|2[0-3]):([0-5]\d):([0-5]\d)(?:\.(\d+))?$")
_DATETIME = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(Z|[+-](\d{1,2})(?::?(\d{2}))?)?$"
)


def is_valid_date(value: str) -> bool:
    """ISO ``YYYY-MM-DD`` with a real calendar day (leap years included)."""
    match = _DATE.match(value)
    if not match:
        return False
    year, month, day = (int(part) for part in match.groups())
    return _valid_ymd(year, month, day)


def _valid_ymd(year: int, month: int, day: int) -> bool:
    if not 1 <= month <= 12 or day < 1:
        return False
    return day <= calendar.monthrange(year, month)[1]


def is_valid_time(value: str, precision: int | None = None) -> bool:
    """``HH:MM:SS[.fff]`` without timezone, optionally with exact fraction digits."""
    match = _TIME.match(value)
    if not match:
        return False
    return _precision_ok(match.group(4), precision)


def _precision_ok(fraction: str | None, precision: int | None) -> bool:
    if precision is None:
        return True
    if fraction is None:
        return precision == 0
    return len(fraction) == precision


def is_valid_datetime(
    value: str,
    offset: bool = False,
    local: bool = False,
    precision: int | None = None,
) -> bool:
    """ISO 8601 datetime.

    By default only UTC (``Z``) is accepted; ``offset`` also allows numeric
    offsets and ``local`` requires the zone designator to be absent.
    """
    match = _DATETIME.match(value)
    if not match:
        return False
    year, month, day, hour, minute, second = (int(match.group(i)) for i in range(1, 7))
    fraction, zone, off_hours, off_minutes = match.group(7), match.group(8), match.group(9), match.group(10)

    if local:
        if zone is not None:
            return False
    elif offset:
        if zone is None:
            return False
    elif zone != "Z":
        return False
    if hour > 23 or minute > 59 or second > 59:
        return False
    if not _valid_ymd(year, month, day):
        return False
    if off_hours is not None:
        if int(off_hours) > 23 or (off_minutes is not None and int(off_minutes) > 59):
            return False
    return _precision_ok(fraction, precision)


def is_valid_ip(value: str, version: str | None = None) -> bool:
    """IPv4/IPv6 address; ``version`` is ``"v4"``, ``"v6"`` or None for either."""
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return False
    return _version_ok(address.version, version)


def is_valid_cidr(value: str, version: str | None = None) -> bool:
    """Network in CIDR notation (host bits may be set)."""
    if "/" not in value:
        return False
    try:
        network = ipaddress.ip_network(value, strict=False)
    except ValueError:
        return False
    return _version_ok(network.version, version)


def _version_ok(actual: int, version: str | None) -> bool:
    if version is None:
        return True
    return version == f"v{actual}"


def is_valid_base64(value: str, padding: bool = True, url_safe: bool = False) -> bool:
    """Base64 text, standard or URL-safe alphabet; the empty string is rejected."""
    if not value:
        return False
    alphabet = r"A-Za-z0-9\-_" if url_safe else r"A-Za-z0-9+/"
    if padding:
        if len(value) % 4 != 0 or not re.match(rf"^[{alphabet}]*={{0,2}}$", value):
            return False
    elif not re.match(rf"^[{alphabet}]*$", value) or len(value) % 4 == 1:
        return False
    padded = value + "=" * (-len(value) % 4)
    try:
        if url_safe:
            _base64.urlsafe_b64decode(padded)
        else:
            _base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True
