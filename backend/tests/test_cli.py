"""Tests for the rover command-line client."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from repo_rover.cli import main as cli

runner = CliRunner()


class FakeResponse:
    def __init__(self, status_code: int, payload) -> None:
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload
        self.text = str(payload)

    def json(self):
        return self._payload


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    recorded: list[dict] = []
    responses: dict[str, FakeResponse] = {
        "/chat": FakeResponse(200, {"answer": "It prints hello.", "sources": ["main.py"]}),
        "/ingest": FakeResponse(400, {"detail": "Not a GitHub repository URL"}),
    }

    def fake_request(method: str, url: str, headers=None, timeout=None, **kwargs):
        recorded.append({"method": method, "url": url, "headers": headers, **kwargs})
        return responses[url.split("8000", 1)[1]]

    monkeypatch.setattr(cli.requests, "request", fake_request)
    monkeypatch.delenv("RROV_HOST", raising=False)
    monkeypatch.delenv("RROV_TOKEN", raising=False)
    return recorded


def test_ask_prints_answer_and_sources(calls: list[dict]) -> None:
    result = runner.invoke(cli.app, ["ask", "https://github.com/octo/demo", "What does main do?", "--token", "t"])
    assert result.exit_code == 0
    assert "It prints hello." in result.output
    assert "main.py" in result.output
    assert calls[0]["url"] == "http://127.0.0.1:8000/chat"
    assert calls[0]["headers"] == {"Authorization": "Bearer t"}
    assert calls[0]["json"] == {"repo_url": "https://github.com/octo/demo", "question": "What does main do?"}


def test_error_response_exits_nonzero(calls: list[dict]) -> None:
    result = runner.invoke(cli.app, ["ingest", "https://example.com/x/y", "--token", "t"])
    assert result.exit_code == 1


def test_missing_token_exits(calls: list[dict]) -> None:
    result = runner.invoke(cli.app, ["repos"])
    assert result.exit_code == 2
    assert calls == []
