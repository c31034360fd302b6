from __future__ import annotations

import itertools

import pytest

from neosafe.errors import ValidationError
from neosafe.services.claim_codes import (
    ALPHABET,
    CodeGenerator,
    generate_claim_code,
    generate_property_code,
    normalize_code,
)


def test_alphabet_is_uppercase_letters_and_digits():
    assert len(ALPHABET) == 36
    assert set(ALPHABET) == set("ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789")


def test_claim_codes_have_expected_shape():
    for _ in range(200):
        code = generate_claim_code()
        assert len(code) == 8
        assert set(code) <= set(ALPHABET)


def test_property_codes_are_six_characters():
    code = generate_property_code()
    assert len(code) == 6
    assert set(code) <= set(ALPHABET)


def test_ten_thousand_claim_codes_are_distinct():
    codes = [generate_claim_code() for _ in range(10_000)]
    assert len(set(codes)) == len(codes)


def test_generator_draws_every_symbol_from_the_choice_function():
    symbols = itertools.cycle("AB12")
    generator = CodeGenerator(8, choice=lambda alphabet: next(symbols))
    assert generator() == "AB12AB12"


def test_normalize_code_trims_and_uppercases():
    assert normalize_code("  x7k2m9qt ", 8) == "X7K2M9QT"


@pytest.mark.parametrize("raw", ["SHORT", "TOOLONGCODE", "X7K2-9QT", "X7K2M9Q!", ""])
def test_normalize_code_rejects_malformed_input(raw):
    with pytest.raises(ValidationError):
        normalize_code(raw, 8, "Claim code")
