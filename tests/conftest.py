"""Shared fixtures: a stand-in for the Gemini image client."""

import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeImageClient:
    """Records prompts; returns PNG bytes unless told to fail for a prompt."""

    def __init__(self, fail_on=(), empty_on=()):
        self.fail_on = set(fail_on)
        self.empty_on = set(empty_on)
        self.calls = []

    def generate_image(self, prompt, reference=None):
        self.calls.append((prompt, reference))
        if prompt in self.fail_on:
            raise RuntimeError(f"API error for {prompt!r}")
        if prompt in self.empty_on:
            return None
        return PNG_BYTES


@pytest.fixture
def fake_client():
    return FakeImageClient()


@pytest.fixture
def no_api_env(monkeypatch):
    for name in ("NANOBANANA_GEMINI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY", "NANOBANANA_MODEL"):
        monkeypatch.delenv(name, raising=False)
