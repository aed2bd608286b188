"""Shared fixtures for unit tests."""

import pytest

ENV_VARS = [
    "OVERPASS_CLI_SERVER",
    "OVERPASS_CLI_TIMEOUT",
    "OVERPASS_CLI_DEFAULT_OUTPUT",
    "OVERPASS_CLI_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Run every test without OVERPASS_CLI_* variables or a stray .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
