"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from bgengine.core.board import Board
from bgengine.core.dice import create_roller

from tests.positions import STATES


@pytest.fixture(scope="session")
def rng():
    """Seeded numpy random generator for testing."""
    return np.random.default_rng(42)


@pytest.fixture
def states():
    """Named state strings."""
    return STATES


@pytest.fixture
def board_from():
    """Build a board from a named state."""
    def make(name: str) -> Board:
        return Board.from_state_string(STATES[name])
    return make


@pytest.fixture
def initial_board():
    """Board in the standard starting position."""
    return Board.from_setup()


@pytest.fixture
def roller_of():
    """Build a scripted roller from a list of rolls."""
    return create_roller
