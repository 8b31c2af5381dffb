"""Pytest configuration — ensures the project root is importable."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))


@pytest.fixture(autouse=True)
def _no_llm_calls(monkeypatch):
    """Prevent real LLM API calls during tests — keeps the suite fast and free."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("BONDFLOW_VERIFY_DELAY", "0")
    monkeypatch.setenv("BONDFLOW_COMPLETE_DELAY", "0")
    yield
