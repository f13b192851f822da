"""
Shared test setup for both suites.

- backend/ goes on sys.path so tests import `main`, `models` and `services`.
- Each test is marked with its suite: tests/unit run against a mocked
  Supabase client, tests/integration against a local Supabase instance.
"""
import sys
from pathlib import Path

import pytest

backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

SUITE_MARKERS = {
    "unit": pytest.mark.unit,
    "integration": pytest.mark.integration,
}


def pytest_collection_modifyitems(items):
    for item in items:
        suite = Path(str(item.fspath)).parent.name
        if suite in SUITE_MARKERS:
            item.add_marker(SUITE_MARKERS[suite])
