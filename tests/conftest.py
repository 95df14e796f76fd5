"""Shared fixtures: fake HTTP sessions so no test touches the network."""

from unittest.mock import MagicMock

import pytest

from starcharts.metrics import MetricsCollector


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def connection_manager(session):
    manager = MagicMock()
    manager.get_session.return_value = session
    return manager


@pytest.fixture
def metrics():
    return MetricsCollector()
