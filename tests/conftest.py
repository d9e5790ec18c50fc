"""Shared fixtures for backplane-cli tests."""

import json
from pathlib import Path
from typing import Dict, List, Tuple, Union

import pytest
import requests


class FakeTransport:
    """Probe transport answering from a proxy -> status/exception table."""

    def __init__(self, answers: Dict[str, Union[int, Exception]], default: Union[int, Exception] = 503):
        self.answers = answers
        self.default = default
        self.calls: List[Tuple[str, str, float]] = []

    def get(self, url: str, proxy_url: str, timeout: float) -> int:
        self.calls.append((url, proxy_url, timeout))
        answer = self.answers.get(proxy_url, self.default)
        if isinstance(answer, Exception):
            raise answer
        return answer

    @property
    def probed(self) -> List[str]:
        return [proxy for _, proxy, _ in self.calls]


@pytest.fixture
def home_dir(tmp_path) -> Path:
    """Isolated home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def environ(home_dir) -> Dict[str, str]:
    """Environment snapshot with only HOME set."""
    return {"HOME": str(home_dir)}


@pytest.fixture
def write_config(home_dir):
    """Write a backplane config.json at the default location."""

    def _write(contents: Union[dict, str]) -> Path:
        path = home_dir / ".config" / "backplane" / "config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(contents, str):
            path.write_text(contents)
        else:
            path.write_text(json.dumps(contents))
        return path

    return _write


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture
def connection_error():
    return requests.ConnectionError("proxy refused connection")
