"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Generator, List, Tuple

import pytest

import fieldkit.settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Run each test from an empty directory with no cached settings."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(fieldkit.settings, "_settings", None)
    yield tmp_path


class Recorder:
    """Listener that records every call it receives."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)

    @property
    def states(self) -> List[Any]:
        """First payload item (the new state) of each call."""
        return [call[0] for call in self.calls]


@pytest.fixture
def recorder() -> Callable[[], Recorder]:
    """Factory for fresh event recorders."""
    return Recorder
