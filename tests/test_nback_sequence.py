from __future__ import annotations

import pytest

from dual_nback_trainer.cognitive_core import SeededRng
from dual_nback_trainer.nback_sequence import GRID_POSITIONS, LETTERS, SequenceGenerator, Stimulus


def test_generator_is_deterministic_for_same_seed() -> None:
    g1 = SequenceGenerator(SeededRng(2024))
    g2 = SequenceGenerator(SeededRng(2024))

    assert g1.generate(40) == g2.generate(40)


def test_generate_returns_requested_length_of_valid_stimuli() -> None:
    seq = SequenceGenerator(SeededRng(5)).generate(100)

    assert len(seq) == 100
    assert isinstance(seq, tuple)
    for stim in seq:
        assert isinstance(stim, Stimulus)
        assert 0 <= stim.position < GRID_POSITIONS
        assert stim.letter in LETTERS


def test_every_position_and_letter_can_be_drawn() -> None:
    gen = SequenceGenerator(SeededRng(77))
    seq = gen.generate(2000)

    assert {s.position for s in seq} == set(range(9))
    assert {s.letter for s in seq} == set(LETTERS)


def test_alphabet_is_nine_letters() -> None:
    assert LETTERS == ("C", "H", "K", "L", "Q", "R", "S", "T", "V")


def test_stimulus_is_immutable() -> None:
    stim = Stimulus(position=3, letter="K")
    with pytest.raises(AttributeError):
        stim.position = 4  # type: ignore[misc]


def test_negative_length_is_rejected() -> None:
    with pytest.raises(ValueError):
        SequenceGenerator(SeededRng(1)).generate(-1)
