# tests/conftest.py
"""
Shared fixtures for the mdrich test suite.

Every test gets its own temporary workspace:

    tmp_path/
    ├── todo/          # input root (input_dir fixture)
    ├── done/          # output root (output_dir fixture, created on load)
    └── mdrich.yaml    # written by make_store()

Provider calls never leave the process: tests build an httpx.Client on an
httpx.MockTransport through the mock_provider fixture.

Test Tiers:
- tier1: pure logic, no I/O
- tier2: filesystem and mocked HTTP
- slow: waits on real rate-limiter refill ticks
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
import yaml

from mdrich.core.config import ConfigStore
from mdrich.core.rate_limit import RateLimiter

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def chat_completion(text: str) -> Dict[str, Any]:
    """OpenAI-shaped response body carrying `text`."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}}],
    }


def request_prompt(request: httpx.Request) -> str:
    """Prompt sent in an OpenAI-shaped request."""
    return json.loads(request.content)["messages"][0]["content"]


class RecordingHandler:
    """MockTransport handler that records requests and delegates to a responder."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def prompts(self) -> List[str]:
        return [request_prompt(r) for r in self.requests]


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by configure_logging() so tests don't leak streams."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_mdrich_handler", False):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove provider credentials picked up from the developer's shell."""
    for name in ("OPENAI_API_KEY", "OPENROUTER_API_KEY", "ANTHROPIC_API_KEY", "MDRICH_API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    path = tmp_path / "todo"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "done"


@pytest.fixture
def make_store(tmp_path: Path, input_dir: Path, output_dir: Path, clean_env):
    """
    Factory writing a configuration file and returning its ConfigStore.

    Sections passed as keyword arguments are merged over the defaults.
    Logging to a file is disabled unless a test asks for it.
    """

    def _make(
        excluded: Any = "",
        *,
        input_path: Optional[Path] = None,
        output_path: Optional[Path] = None,
        model: Optional[Dict[str, Any]] = None,
        processing: Optional[Dict[str, Any]] = None,
        prompt: str = "Enrich this note:",
        filename: str = "mdrich.yaml",
    ) -> ConfigStore:
        data: Dict[str, Any] = {
            "directories": {
                "input_dir": str(input_path or input_dir),
                "output_dir": str(output_path or output_dir),
            },
            "exclusions": {"excluded_files": excluded},
            "model": {"name": "gpt-test", "api_url": OPENAI_URL, "api_key": "sk-test"},
            "prompt": {"text": prompt},
            "processing": {"requests_per_minute": 6000},
            "logging": {"level": "DEBUG", "file": None},
        }
        if model:
            data["model"].update(model)
        if processing:
            data["processing"].update(processing)

        path = tmp_path / filename
        path.write_text(
            yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8"
        )
        return ConfigStore(path)

    return _make


@pytest.fixture
def limiter():
    """Limiter generous enough that tests never wait on it."""
    rl = RateLimiter(requests_per_minute=6000)
    yield rl
    rl.close()


@pytest.fixture
def mock_provider():
    """
    Factory returning (handler, httpx.Client) for a responder callable.

    Usage:
        handler, http = mock_provider(lambda req: httpx.Response(200, json=...))
    """
    clients: List[httpx.Client] = []

    def _make(responder: Callable[[httpx.Request], httpx.Response]):
        handler = RecordingHandler(responder)
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return handler, client

    yield _make

    for client in clients:
        client.close()
