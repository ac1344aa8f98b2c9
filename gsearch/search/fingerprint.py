"""Browser fingerprint resolution.

A fingerprint is resolved once per state identifier and then reused verbatim,
so repeated runs present the same device, locale, timezone and color scheme.
"""

from __future__ import annotations

import os
import platform
import random
from collections.abc import Mapping
from datetime import datetime

from gsearch.search.models import FingerprintConfig

# Chromium family only; the launched engine is always Chromium.
DEVICE_PROFILES = (
    "Desktop Chrome",
    "Desktop Edge",
    "Desktop Chrome HiDPI",
    "Desktop Edge HiDPI",
)

DEFAULT_LOCALE = "en-US"

# UTC offset in hours -> representative IANA zone.
TIMEZONE_BUCKETS: dict[float, str] = {
    -10.0: "Pacific/Honolulu",
    -8.0: "America/Los_Angeles",
    -7.0: "America/Denver",
    -6.0: "America/Chicago",
    -5.0: "America/New_York",
    -3.0: "America/Sao_Paulo",
    0.0: "Europe/London",
    1.0: "Europe/Berlin",
    2.0: "Europe/Athens",
    3.0: "Europe/Moscow",
    4.0: "Asia/Dubai",
    5.5: "Asia/Kolkata",
    7.0: "Asia/Bangkok",
    8.0: "Asia/Shanghai",
    9.0: "Asia/Tokyo",
    10.0: "Australia/Sydney",
    12.0: "Pacific/Auckland",
}

_LOCALE_ENV_KEYS = ("LC_ALL", "LC_MESSAGES", "LANG")


def resolve_fingerprint(
    prior: FingerprintConfig | None = None,
    locale_hint: str | None = None,
    *,
    now: datetime | None = None,
    rng: random.Random | None = None,
    environ: Mapping[str, str] | None = None,
) -> FingerprintConfig:
    """Return the prior fingerprint, or derive a new one from host signals."""
    if prior is not None:
        return prior

    if now is not None and now.tzinfo is not None:
        local_now = now
    else:
        local_now = (now or datetime.now()).astimezone()
    chooser = rng or random.Random(platform.node() or "gsearch")

    return FingerprintConfig(
        device_name=chooser.choice(DEVICE_PROFILES),
        locale=locale_hint or host_locale(environ) or DEFAULT_LOCALE,
        timezone_id=bucket_timezone(local_now),
        color_scheme=color_scheme_for_hour(local_now.hour),
        reduced_motion="no-preference",
        forced_colors="none",
    )


def bucket_timezone(moment: datetime) -> str:
    """Map the UTC offset of an aware datetime to the nearest known zone."""
    offset = moment.utcoffset()
    hours = offset.total_seconds() / 3600 if offset is not None else 0.0
    nearest = min(TIMEZONE_BUCKETS, key=lambda bucket: (abs(bucket - hours), bucket))
    return TIMEZONE_BUCKETS[nearest]


def color_scheme_for_hour(hour: int) -> str:
    return "dark" if hour >= 19 or hour < 7 else "light"


def host_locale(environ: Mapping[str, str] | None = None) -> str | None:
    """Read a BCP 47 locale tag from POSIX locale variables."""
    env = os.environ if environ is None else environ
    for key in _LOCALE_ENV_KEYS:
        raw = (env.get(key) or "").strip()
        if not raw:
            continue
        # en_GB.UTF-8@euro -> en_GB
        tag = raw.split(".", 1)[0].split("@", 1)[0]
        if not tag or tag in {"C", "POSIX"}:
            continue
        return tag.replace("_", "-")
    return None
