"""Tests for dice module."""

import numpy as np
import pytest
from bgengine.core.dice import (
    ALL_DICE_ROLLS,
    check_faces,
    check_one,
    check_two,
    create_roller,
    dice_to_string,
    faces,
    first_roll_winner,
    is_doubles,
    roll_one,
    roll_two,
    sequences_for_faces,
    validate_rolls_data,
)
from bgengine.core.errors import InvalidRollDataError, InvalidRollError
from bgengine.core.types import Color


class TestRolling:
    """Tests for dice rolling."""

    def test_roll_two_range(self, rng):
        """Test rolled dice are in 1-6."""
        for _ in range(200):
            die1, die2 = roll_two(rng)
            assert 1 <= die1 <= 6
            assert 1 <= die2 <= 6

    def test_roll_one_covers_faces(self, rng):
        """Test every face comes up."""
        seen = {roll_one(rng) for _ in range(500)}
        assert seen == {1, 2, 3, 4, 5, 6}

    def test_roll_returns_python_ints(self, rng):
        """Test dice are plain ints, not numpy scalars."""
        die1, die2 = roll_two(rng)
        assert type(die1) is int and type(die2) is int

    def test_seeded_reproducible(self):
        """Test same seed gives same rolls."""
        rolls1 = [roll_two(np.random.default_rng(7)) for _ in range(3)]
        rolls2 = [roll_two(np.random.default_rng(7)) for _ in range(3)]
        assert rolls1 == rolls2

    def test_scripted_roller_cycles(self):
        """Test scripted roller plays back and wraps around."""
        roller = create_roller([(6, 1), (3, 3)])
        assert [roller() for _ in range(3)] == [(6, 1), (3, 3), (6, 1)]

    def test_scripted_roller_empty(self):
        """Test empty script raises."""
        with pytest.raises(InvalidRollDataError):
            create_roller([])


class TestFaces:
    """Tests for face derivation."""

    def test_faces_regular(self):
        """Test non-doubles give two faces."""
        assert faces((3, 5)) == [3, 5]

    def test_faces_doubles(self):
        """Test doubles give four faces."""
        assert faces((4, 4)) == [4, 4, 4, 4]

    def test_is_doubles(self):
        """Test doubles detection."""
        assert is_doubles((2, 2))
        assert not is_doubles((2, 3))

    def test_sequences_regular(self):
        """Test both orderings for two faces."""
        assert sequences_for_faces([6, 1]) == [[6, 1], [1, 6]]

    def test_sequences_doubles(self):
        """Test one ordering for doubles."""
        assert sequences_for_faces([5, 5, 5, 5]) == [[5, 5, 5, 5]]

    def test_first_roll_winner(self):
        """Test the higher die moves first, ties roll again."""
        assert first_roll_winner((5, 2)) is Color.WHITE
        assert first_roll_winner((1, 6)) is Color.RED
        assert first_roll_winner((3, 3)) is None

    def test_all_dice_rolls(self):
        """Test 21 distinct rolls, 6 of them doubles."""
        assert len(ALL_DICE_ROLLS) == 21
        assert sum(1 for dice in ALL_DICE_ROLLS if is_doubles(dice)) == 6

    def test_dice_to_string(self):
        """Test readable form."""
        assert dice_to_string((3, 5)) == "3-5"
        assert dice_to_string((4, 4)) == "Double 4s"


class TestValidation:
    """Tests for dice validation."""

    @pytest.mark.parametrize("face", [0, 7, -1, 1.5, "3", None, True])
    def test_check_one_invalid(self, face):
        """Test faces outside 1-6 or not integers raise."""
        with pytest.raises(InvalidRollError):
            check_one(face)

    def test_check_one_numpy_int(self):
        """Test numpy integers are accepted."""
        check_one(np.int64(4))

    def test_check_two_valid(self):
        """Test a valid roll passes."""
        check_two([6, 1])
        check_two((2, 2))

    @pytest.mark.parametrize("dice", [[1], [1, 2, 3], 5, [1, 7]])
    def test_check_two_invalid(self, dice):
        """Test malformed rolls raise."""
        with pytest.raises(InvalidRollError):
            check_two(dice)

    def test_check_faces(self):
        """Test two faces or four equal faces."""
        check_faces([5, 2])
        check_faces([3, 3, 3, 3])
        with pytest.raises(InvalidRollError):
            check_faces([3, 3, 3, 2])
        with pytest.raises(InvalidRollError):
            check_faces([3, 3, 3])

    def test_validate_rolls_data(self):
        """Test valid rolls data passes through."""
        data = {"rolls": [[6, 6], [2, 1]]}
        assert validate_rolls_data(data) is data

    def test_validate_rolls_data_needs_unique(self):
        """Test all doubles is rejected."""
        with pytest.raises(InvalidRollDataError):
            validate_rolls_data({"rolls": [[6, 6], [1, 1]]})

    @pytest.mark.parametrize("data", [{}, {"rolls": []}, {"rolls": "12"}, {"rolls": [[1, 9]]}])
    def test_validate_rolls_data_invalid(self, data):
        """Test malformed rolls data is rejected."""
        with pytest.raises(InvalidRollDataError):
            validate_rolls_data(data)
