"""Shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from chartlab.main import app
from tests.helpers import make_arrays, make_candles, wave


@pytest.fixture
def wave_closes():
    """Three full sine cycles on a flat base."""
    return wave(120)


@pytest.fixture
def wave_candles(wave_closes):
    return make_candles(wave_closes)


@pytest.fixture
def wave_arrays(wave_closes):
    return make_arrays(wave_closes)


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
