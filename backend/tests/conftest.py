"""Test fixtures for Repo Rover."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import httpx
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from repo_rover.ingest.embeddings import HashedEmbeddingModel  # noqa: E402
from repo_rover.retrieval.prompt import NO_CONTEXT_MARKER, NOT_IN_CONTEXT_REPLY  # noqa: E402

API_TOKEN = "test-token"
OWNER_ID = "user-1"
REPO_URL = "https://github.com/octo/demo"


def _reset_dependencies() -> None:
    from repo_rover.api import dependencies as deps

    deps.get_app_settings.cache_clear()
    deps._DB = None
    deps._HTTP_CLIENT = None
    deps._PROGRESS = None
    deps._EMBEDDER = None
    deps._VECTOR_INDEX = None
    deps._PIPELINE = None
    deps._QUERY_SERVICE = None


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("RROV_DB_PATH", str(tmp_path / "rover.db"))
    monkeypatch.setenv("RROV_API_TOKENS", f'{{"{API_TOKEN}": "{OWNER_ID}"}}')
    monkeypatch.setenv("RROV_EMBED_DELAY_SECONDS", "0")
    monkeypatch.delenv("RROV_CONFIG", raising=False)
    _reset_dependencies()
    yield
    _reset_dependencies()


class RecordingSink:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def emit(self, message: str) -> None:
        self.messages.append(message)


class FlakyEmbedder:
    """Hashed embeddings that fail for any text containing a marker."""

    def __init__(self, dim: int = 64, fail_on: tuple[str, ...] = ()) -> None:
        self.model = HashedEmbeddingModel(dim=dim)
        self.fail_on = fail_on
        self.calls: list[str] = []

    @property
    def dim(self) -> int:
        return self.model.dim

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise RuntimeError("embedding quota exceeded")
        return await self.model.embed(text)


class FakeGenerator:
    """Reply with the not-in-context sentence when the prompt carries no context."""

    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if NO_CONTEXT_MARKER in prompt:
            return NOT_IN_CONTEXT_REPLY
        return "The entry point is main.py."


class FakeGitHub:
    """Serve a nested dict as the GitHub contents API and raw host.

    Dict values are directories, string values are file contents.
    """

    def __init__(self, tree: dict[str, Any], owner: str = "octo", repo: str = "demo") -> None:
        self.tree = tree
        self.owner = owner
        self.repo = repo
        self.listed: list[str] = []
        self.downloaded: list[str] = []
        self.fail_listing: set[str] = set()
        self.fail_download: set[str] = set()

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.github.com":
            prefix = f"/repos/{self.owner}/{self.repo}/contents"
            if not request.url.path.startswith(prefix):
                return httpx.Response(404, json={"message": "Not Found"})
            rel = request.url.path[len(prefix) :].strip("/")
            self.listed.append(rel)
            if rel in self.fail_listing:
                return httpx.Response(403, json={"message": "API rate limit exceeded"})
            node = self._node(rel)
            if not isinstance(node, dict):
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json=[self._entry(rel, name, child) for name, child in node.items()])
        if request.url.host == "raw.githubusercontent.com":
            rel = request.url.path.split("/main/", 1)[1]
            self.downloaded.append(rel)
            if rel in self.fail_download:
                raise RuntimeError(f"connection reset while fetching {rel}")
            node = self._node(rel)
            if not isinstance(node, str):
                return httpx.Response(404, text="404: Not Found")
            return httpx.Response(200, text=node)
        return httpx.Response(404)

    def _node(self, rel: str) -> Any:
        node: Any = self.tree
        for part in [part for part in rel.split("/") if part]:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _entry(self, parent: str, name: str, child: Any) -> dict[str, Any]:
        path = f"{parent}/{name}" if parent else name
        if isinstance(child, dict):
            return {"type": "dir", "name": name, "path": path, "download_url": None}
        return {
            "type": "file",
            "name": name,
            "path": path,
            "download_url": f"https://raw.githubusercontent.com/{self.owner}/{self.repo}/main/{path}",
        }


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fake_github_factory():
    return FakeGitHub


@pytest.fixture
def flaky_embedder_factory():
    return FlakyEmbedder


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def sample_tree() -> dict[str, Any]:
    return {
        "README.md": "# Demo\n\nA tiny demo project used for retrieval tests.",
        "main.py": "def main():\n    print('hello from main')\n\n\nif __name__ == '__main__':\n    main()\n",
        "logo.png": "not really a png",
        "node_modules": {"left-pad": {"index.js": "module.exports = leftPad;"}},
        "src": {
            "util.js": "export function add(a, b) {\n  return a + b;\n}\n",
            "deep": {"config.json": '{"debug": true}'},
        },
    }
