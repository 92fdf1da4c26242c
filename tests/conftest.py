"""Pytest configuration and shared fixtures."""

import pytest

from tests.fixtures import sample_evidence


@pytest.fixture
def evidence():
    """Sample career evidence bundle."""
    return sample_evidence()
