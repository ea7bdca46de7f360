"""
Test fixtures for workout-notation.

Provides an API client with the parser host and exercise catalog swapped for
test doubles, plus a small exercise directory.
"""

import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import workout_notation...`
for p in {ROOT, SRC}:
    p_str = str(p)
    if p_str not in sys.path:
        sys.path.insert(0, p_str)

from workout_notation.main import app
from workout_notation.parsers.models import DirectoryExercise
from workout_notation.services.catalog_client import get_catalog_client
from workout_notation.services.parser_host import ParserHost, get_parser_host


# ---------------------------------------------------------------------------
# Parser host
# ---------------------------------------------------------------------------


@pytest.fixture
def parser_host():
    """Thread-backed parser host, closed after the test."""
    host = ParserHost(
        timeout=5.0,
        restart_backoff=1.0,
        executor_factory=lambda: ThreadPoolExecutor(max_workers=1),
    )
    yield host
    host.close()


# ---------------------------------------------------------------------------
# Core Test Client
# ---------------------------------------------------------------------------


@pytest.fixture
def client(parser_host) -> TestClient:
    """Per-test FastAPI TestClient with no exercise catalog configured."""
    app.dependency_overrides[get_parser_host] = lambda: parser_host
    app.dependency_overrides[get_catalog_client] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Sample Data Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def directory() -> List[DirectoryExercise]:
    """Small exercise directory as served by the catalog."""
    return [
        DirectoryExercise(
            id="1",
            name="Bench Press",
            muscle_group="chest",
            equipment="barbell",
            video_links=["https://videos.example.com/bench-press"],
        ),
        DirectoryExercise(id="2", name="Squat", muscle_group="legs", equipment="barbell"),
        DirectoryExercise(id="3", name="Romanian Deadlift", muscle_group="hamstrings"),
    ]
