"""Data models for browser-driven search."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Literal, get_args

if TYPE_CHECKING:
    from gsearch.config.schema import Config

ColorScheme = Literal["dark", "light"]
ReducedMotion = Literal["reduce", "no-preference"]
ForcedColors = Literal["active", "none"]

FAILED_RESULT_TITLE = "Search failed"


@dataclass(frozen=True, slots=True)
class FingerprintConfig:
    """Browser identity presented to the search engine."""

    device_name: str
    locale: str
    timezone_id: str
    color_scheme: ColorScheme = "light"
    reduced_motion: ReducedMotion = "no-preference"
    forced_colors: ForcedColors = "none"

    def to_dict(self) -> dict[str, Any]:
        return {
            "deviceName": self.device_name,
            "locale": self.locale,
            "timezoneId": self.timezone_id,
            "colorScheme": self.color_scheme,
            "reducedMotion": self.reduced_motion,
            "forcedColors": self.forced_colors,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FingerprintConfig":
        """Raise ValueError when a media feature holds a value the browser rejects."""
        color_scheme = _choice(data, "colorScheme", ColorScheme, "light")
        reduced_motion = _choice(data, "reducedMotion", ReducedMotion, "no-preference")
        forced_colors = _choice(data, "forcedColors", ForcedColors, "none")
        return cls(
            device_name=str(data.get("deviceName") or "Desktop Chrome"),
            locale=str(data.get("locale") or "en-US"),
            timezone_id=str(data.get("timezoneId") or "UTC"),
            color_scheme=color_scheme,
            reduced_motion=reduced_motion,
            forced_colors=forced_colors,
        )


def _choice(data: dict[str, Any], key: str, allowed: Any, default: str) -> Any:
    value = data.get(key) or default
    if value not in get_args(allowed):
        raise ValueError(f"invalid {key}: {value!r}")
    return value


@dataclass(slots=True)
class SavedState:
    """Fingerprint and engine domain remembered for one state identifier."""

    fingerprint: FingerprintConfig | None = None
    last_good_domain: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.fingerprint is not None:
            payload["fingerprint"] = self.fingerprint.to_dict()
        if self.last_good_domain:
            payload["lastGoodDomain"] = self.last_good_domain
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SavedState":
        fingerprint_raw = data.get("fingerprint")
        fingerprint = (
            FingerprintConfig.from_dict(fingerprint_raw)
            if isinstance(fingerprint_raw, dict)
            else None
        )
        # Older state files stored the domain as "googleDomain".
        domain = data.get("lastGoodDomain") or data.get("googleDomain")
        return cls(
            fingerprint=fingerprint,
            last_good_domain=str(domain) if domain else None,
        )


@dataclass(frozen=True, slots=True)
class SearchOptions:
    """Per-call search options."""

    limit: int = 10
    timeout_ms: int = 60000
    state_file: str = "./browser-state.json"
    save_state: bool = True
    visible: bool = False
    locale: str | None = None

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.timeout_ms < 1:
            raise ValueError("timeout_ms must be >= 1")

    @classmethod
    def from_config(cls, config: "Config", **overrides: Any) -> "SearchOptions":
        """Build options from loaded configuration, applying non-None overrides."""
        options = cls(
            limit=config.limit,
            timeout_ms=config.timeout_ms,
            state_file=config.state.state_file,
            save_state=config.state.save_state,
            locale=config.locale,
        )
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(options, **changes) if changes else options


@dataclass(slots=True)
class SearchResult:
    """One organic result as presented on the results page."""

    title: str
    link: str
    snippet: str = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.title) and bool(self.link)

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "link": self.link, "snippet": self.snippet}


@dataclass(slots=True)
class SearchResponse:
    """Results for one query, in page order."""

    query: str
    results: list[SearchResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (
            len(self.results) == 1
            and self.results[0].title == FAILED_RESULT_TITLE
            and not self.results[0].link
        )

    @classmethod
    def failed(cls, query: str, error: BaseException | str) -> "SearchResponse":
        """Degraded response carrying a single failure record."""
        return cls(
            query=query,
            results=[SearchResult(title=FAILED_RESULT_TITLE, link="", snippet=str(error))],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "results": [result.to_dict() for result in self.results],
        }
