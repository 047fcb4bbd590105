"""
Pytest configuration and fixtures

Plans and ledgers are built in memory; the engine never touches storage.
"""
import pytest

from ledger_helpers import START, make_plan


@pytest.fixture
def plan():
    """Active plan with two exercises and default settings."""
    return make_plan()


@pytest.fixture
def single_exercise_plan():
    return make_plan(exercise_count=1)


@pytest.fixture
def clock():
    return START
