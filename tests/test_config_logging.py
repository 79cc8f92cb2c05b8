import logging

from uxr_prototype.config import load_settings
from uxr_prototype.logging_config import setup_logging


def test_load_settings(monkeypatch):
    monkeypatch.setenv("UXR_BASE_URL", "https://example.org/app/")
    monkeypatch.setenv("UXR_ORIGIN", "https://example.org/")
    monkeypatch.delenv("UXR_DEFAULT_SCENARIO", raising=False)
    s = load_settings()
    assert s.base_url == "https://example.org/app/"
    assert s.origin == "https://example.org"
    assert s.default_scenario == "enterprise"
    assert s.participant_dir == "data/participants"

    # empty values fall back to defaults
    monkeypatch.setenv("UXR_BASE_URL", "")
    s2 = load_settings()
    assert s2.base_url == "http://localhost:8000/account-group-uxr/"


def test_setup_logging_idempotent():
    logger1 = setup_logging(logging.DEBUG)
    logger2 = setup_logging(logging.DEBUG)
    assert logger1 is logger2
    assert logger1.handlers  # at least one handler installed
    assert logging.getLogger("httpx").level == logging.WARNING
