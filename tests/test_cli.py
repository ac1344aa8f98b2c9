import json

import pytest

from gsearch.cli import format_responses, main
from gsearch.search.models import SearchResponse, SearchResult


def _responses(queries):
    return [
        SearchResponse(
            query=q,
            results=[SearchResult(title=f"{q} title", link=f"https://{q}.example/", snippet="s")],
        )
        for q in queries
    ]


def test_main_without_queries_prints_usage(capsys) -> None:
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().err


def test_main_runs_batch_with_flag_overrides(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setattr("gsearch.cli.setup_logging", lambda *args, **kwargs: None)
    captured = {}

    async def fake_search_batch(self, queries, options):
        captured["queries"] = list(queries)
        captured["options"] = options
        return _responses(queries)

    monkeypatch.setattr("gsearch.cli.SearchOrchestrator.search_batch", fake_search_batch)

    code = main(
        [
            "alpha",
            "beta",
            "--debug",
            "--limit",
            "3",
            "--no-save-state",
            "--state-file",
            str(tmp_path / "s.json"),
            "--config",
            str(tmp_path / "missing.json"),
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert captured["queries"] == ["alpha", "beta"]
    assert captured["options"].visible is True
    assert captured["options"].limit == 3
    assert captured["options"].save_state is False
    assert "=== Results for: alpha ===" in out
    assert "1. beta title" in out


def test_main_json_output(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setattr("gsearch.cli.setup_logging", lambda *args, **kwargs: None)

    async def fake_search_batch(self, queries, options):
        return _responses(queries)

    monkeypatch.setattr("gsearch.cli.SearchOrchestrator.search_batch", fake_search_batch)

    assert main(["solo", "--json", "--config", str(tmp_path / "none.json")]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload[0]["query"] == "solo"
    assert payload[0]["results"][0]["link"] == "https://solo.example/"


def test_main_rejects_invalid_limit(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr("gsearch.cli.setup_logging", lambda *args, **kwargs: None)
    with pytest.raises(SystemExit):
        main(["q", "--limit", "0", "--config", str(tmp_path / "none.json")])


def test_format_single_query_has_no_header() -> None:
    text = format_responses(_responses(["one"]))
    assert "===" not in text
    assert "1. one title" in text
    assert "   https://one.example/" in text


def test_format_empty_response() -> None:
    text = format_responses([SearchResponse(query="q", results=[])])
    assert "No results found." in text
