from pathlib import Path

import pytest

BACKEND = Path(__file__).resolve().parents[1]


def test_package_discovery_includes_routes_and_services():
    setuptools = pytest.importorskip("setuptools")

    found = set(setuptools.find_namespace_packages(where=str(BACKEND), include=["stocktrack*"]))

    assert {"stocktrack", "stocktrack.models", "stocktrack.routes", "stocktrack.services"} <= found
    assert not (BACKEND / "stocktrack" / "routes" / "__init__.py").exists()
