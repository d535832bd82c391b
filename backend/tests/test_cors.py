import importlib
import sys

import pytest


@pytest.fixture(autouse=True)
def main_import_isolation():
    # re-import foosball.main fresh, then put the shared app back
    shared = sys.modules.pop("foosball.main", None)
    try:
        yield
    finally:
        sys.modules.pop("foosball.main", None)
        if shared is not None:
            sys.modules["foosball.main"] = shared


def test_rejects_wildcard_origin(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "*")
    monkeypatch.setenv("ALLOW_CREDENTIALS", "true")
    with pytest.raises(ValueError):
        importlib.import_module("foosball.main")


def test_requires_allowed_origins(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    with pytest.raises(ValueError):
        importlib.import_module("foosball.main")


def test_blank_origins_are_rejected(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", " , ")
    with pytest.raises(ValueError):
        importlib.import_module("foosball.main")
