"""Search tool exposed to protocol servers."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

from gsearch.search.orchestrator import SearchOrchestrator

if TYPE_CHECKING:
    from gsearch.config.schema import Config

_MAX_QUERIES = 10
_MAX_LIMIT = 50


class GoogleSearchTool:
    """Run a batch of Google searches in one browser and return JSON."""

    name = "search"
    description = (
        "Search Google for one or more queries through a real browser and return "
        "title/link/snippet results for each query."
    )
    parameters = {
        "type": "object",
        "properties": {
            "queries": {
                "type": "array",
                "items": {"type": "string", "minLength": 1},
                "minItems": 1,
                "maxItems": _MAX_QUERIES,
                "description": "Search queries to run in parallel",
            },
            "limit": {
                "type": "integer",
                "minimum": 1,
                "maximum": _MAX_LIMIT,
                "description": "Maximum results per query",
            },
            "timeoutMs": {
                "type": "integer",
                "minimum": 1000,
                "maximum": 300000,
                "description": "Timeout per browser step in milliseconds",
            },
            "locale": {
                "type": "string",
                "description": "Locale for a newly created browser identity",
            },
        },
        "required": ["queries"],
    }

    def __init__(
        self,
        config: "Config | None" = None,
        *,
        orchestrator: SearchOrchestrator | None = None,
        visible: bool = False,
    ):
        self.orchestrator = orchestrator or SearchOrchestrator(config)
        self.visible = visible

    async def execute(self, queries: list[str], **kwargs: Any) -> str:
        started_at = time.monotonic()
        try:
            cleaned = self._validate_queries(queries)
            options = self.orchestrator.default_options(
                limit=self._bounded_int(kwargs.get("limit"), "limit", 1, _MAX_LIMIT),
                timeout_ms=self._bounded_int(kwargs.get("timeoutMs"), "timeoutMs", 1000, 300000),
                locale=kwargs.get("locale") or None,
                visible=True if self.visible else None,
            )
        except ValueError as e:
            return json.dumps(
                self._error_payload("invalid_input", str(e), timing_ms=_elapsed_ms(started_at)),
                ensure_ascii=False,
            )

        try:
            responses = await self.orchestrator.search_batch(cleaned, options)
        except Exception as e:
            return json.dumps(
                self._error_payload("search_failed", str(e), timing_ms=_elapsed_ms(started_at)),
                ensure_ascii=False,
            )

        return json.dumps(
            {
                "ok": True,
                "responses": [response.to_dict() for response in responses],
                "failed": [r.query for r in responses if not r.ok],
                "timingMs": _elapsed_ms(started_at),
                "error": None,
            },
            ensure_ascii=False,
        )

    @staticmethod
    def _validate_queries(queries: Any) -> list[str]:
        if isinstance(queries, str):
            queries = [queries]
        if not isinstance(queries, list) or not queries:
            raise ValueError("queries must be a non-empty list of strings")
        if len(queries) > _MAX_QUERIES:
            raise ValueError(f"queries count exceeds maximum of {_MAX_QUERIES}")
        cleaned: list[str] = []
        for index, query in enumerate(queries, start=1):
            if not isinstance(query, str) or not query.strip():
                raise ValueError(f"query #{index} must be a non-empty string")
            cleaned.append(query.strip())
        return cleaned

    @staticmethod
    def _bounded_int(value: Any, label: str, low: int, high: int) -> int | None:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{label} must be an integer")
        if value < low or value > high:
            raise ValueError(f"{label} must be in [{low}, {high}]")
        return value

    @staticmethod
    def _error_payload(code: str, message: str, *, timing_ms: int | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ok": False,
            "responses": [],
            "failed": [],
            "error": {"code": code, "message": message},
        }
        if timing_ms is not None:
            payload["timingMs"] = timing_ms
        return payload


def _elapsed_ms(started_at: float) -> int:
    return int((time.monotonic() - started_at) * 1000)
