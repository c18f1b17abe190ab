"""Shared pytest fixtures."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"

AMBER_ALERT = "cap_amber_alert_example.xml"
CAP11_ALERT = "cap11_high_wind_warning.xml"
NWS_FEED = "nws_atom_feed_example.xml"


def read_fixture(name: str) -> bytes:
    return (FIXTURES_DIR / name).read_bytes()


@pytest.fixture
def logger() -> logging.Logger:
    log = logging.getLogger("capship.tests")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def amber_alert_bytes() -> bytes:
    return read_fixture(AMBER_ALERT)


@pytest.fixture
def cap11_alert_bytes() -> bytes:
    return read_fixture(CAP11_ALERT)


@pytest.fixture
def nws_feed_bytes() -> bytes:
    return read_fixture(NWS_FEED)
