"""Pytest configuration and fixtures for Brigade Observer tests."""

import pytest

from brigade_observer.constants import COMPONENT_JOB, COMPONENT_WORKER
from tests.mocks import FakeKind


@pytest.fixture
def worker_kind() -> FakeKind:
    """Fake Worker kind recording remote calls."""
    return FakeKind(COMPONENT_WORKER)


@pytest.fixture
def job_kind() -> FakeKind:
    """Fake Job kind recording remote calls."""
    return FakeKind(COMPONENT_JOB)
