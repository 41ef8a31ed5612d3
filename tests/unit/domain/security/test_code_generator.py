"""Tests for SecureCodeGenerator."""

import pytest

from warden.core.exceptions import ValidationError
from warden.domain.security.code_generator import ALPHANUMERIC_ALPHABET, SecureCodeGenerator


class TestSecureCodeGenerator:
    @pytest.fixture
    def generator(self):
        return SecureCodeGenerator()

    def test_default_numeric_code_is_six_digits(self, generator):
        for _ in range(200):
            code = generator.generate_numeric_code()
            assert len(code) == 6
            assert code.isdigit()
            assert code[0] != "0"

    @pytest.mark.parametrize("length", [4, 8, 10])
    def test_numeric_code_respects_length(self, generator, length):
        code = generator.generate_numeric_code(length)
        assert len(code) == length
        assert 10 ** (length - 1) <= int(code) <= 10**length - 1

    @pytest.mark.parametrize("length", [0, 3, 11])
    def test_numeric_code_rejects_out_of_range_length(self, generator, length):
        with pytest.raises(ValidationError) as exc_info:
            generator.generate_numeric_code(length)
        assert exc_info.value.code == "invalid_code_length"

    def test_alphanumeric_code_uses_uppercase_alphabet(self, generator):
        code = generator.generate_alphanumeric_code()
        assert len(code) == 32
        assert set(code) <= set(ALPHANUMERIC_ALPHABET)

    @pytest.mark.parametrize("length", [7, 129])
    def test_alphanumeric_code_rejects_out_of_range_length(self, generator, length):
        with pytest.raises(ValidationError):
            generator.generate_alphanumeric_code(length)

    def test_codes_are_not_repeated(self, generator):
        codes = {generator.generate_alphanumeric_code(16) for _ in range(100)}
        assert len(codes) == 100
