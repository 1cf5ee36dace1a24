import os

import pytest


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep a developer's DOTEDIT_* variables or dotedit.json out of the tests."""
    for name in list(os.environ):
        if name.startswith("DOTEDIT_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
