"""Configuration schema using Pydantic."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from gsearch.search.navigator import (
    DEFAULT_CHALLENGE_PATTERNS,
    DEFAULT_DOMAINS,
    DEFAULT_EXCLUDED_DOMAINS,
    DEFAULT_RESULTS_PATTERNS,
    DEFAULT_RESULTS_READY_SELECTOR,
    DEFAULT_SEARCH_BOX_SELECTORS,
)
from gsearch.search.session import DEFAULT_BROWSER_ARGS


class Base(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EngineConfig(Base):
    """Search engine UI description."""

    domains: list[str] = Field(default_factory=lambda: list(DEFAULT_DOMAINS), min_length=1)
    challenge_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CHALLENGE_PATTERNS)
    )
    results_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_RESULTS_PATTERNS))
    search_box_selectors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SEARCH_BOX_SELECTORS), min_length=1
    )
    results_ready_selector: str = DEFAULT_RESULTS_READY_SELECTOR
    manual_solve_timeout_ms: int = Field(default=0, ge=0)  # 0 waits indefinitely
    excluded_domains: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_DOMAINS))


class BrowserConfig(Base):
    """Chromium launch configuration."""

    args: list[str] = Field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    auto_install_browsers: bool = True


class StateConfig(Base):
    """Persisted identity configuration."""

    state_file: str = "./browser-state.json"
    save_state: bool = True
    policy: Literal["per_query", "shared"] = "per_query"


class PacingConfig(Base):
    """Human-like typing delays in milliseconds."""

    key_delay_min_ms: int = Field(default=10, ge=0)
    key_delay_max_ms: int = Field(default=30, ge=0)
    submit_pause_min_ms: int = Field(default=100, ge=0)
    submit_pause_max_ms: int = Field(default=300, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PacingConfig":
        if self.key_delay_min_ms > self.key_delay_max_ms:
            raise ValueError("keyDelayMinMs must not exceed keyDelayMaxMs")
        if self.submit_pause_min_ms > self.submit_pause_max_ms:
            raise ValueError("submitPauseMinMs must not exceed submitPauseMaxMs")
        return self


class Config(Base):
    """Root configuration for gsearch."""

    limit: int = Field(default=10, ge=1)
    timeout_ms: int = Field(default=60000, ge=1000)
    locale: str | None = None
    engine: EngineConfig = Field(default_factory=EngineConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    pacing: PacingConfig = Field(default_factory=PacingConfig)
