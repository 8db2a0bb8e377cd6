import logging
import os

import pytest

import config


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Drop cached settings and SYMCALC_* overrides around every test."""
    for name in list(os.environ):
        if name.startswith("SYMCALC_"):
            monkeypatch.delenv(name)
    monkeypatch.setattr(config, "_settings", None)
    yield
    config._settings = None


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo what the command line entry point does to the root logger."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if getattr(handler, "_symcalc", False):
            root.removeHandler(handler)
    root.setLevel(level)
