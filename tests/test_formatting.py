"""
Tests for gate parameter formatting.
"""

import math

import numpy as np
import pytest

from qollage.formatting import (
    format_calculator,
    format_complex_value,
    format_matrix,
    format_qubit_input,
    format_symbol_str,
)


class TestNumbers:
    """Tests for numeric parameters."""

    @pytest.mark.parametrize("value, expected", [
        (math.pi, "pi"),
        (-math.pi, "-pi"),
        (math.pi / 2, "pi/2"),
        (-math.pi / 4, "-pi/4"),
        (math.sqrt(2), "sqrt(2)"),
        (-1 / math.sqrt(2), "-1/sqrt(2)"),
    ])
    def test_named_constants(self, value, expected):
        """Common constants are printed by name."""
        assert format_calculator(value) == expected

    def test_constant_tolerance(self):
        """Values within 1e-6 of a constant use its name."""
        assert format_calculator(math.pi + 5e-7) == "pi"
        assert format_calculator(math.pi + 1e-3) == "3.14"

    def test_integral_values(self):
        """Integral values have no decimals."""
        assert format_calculator(2.0) == "2"
        assert format_calculator(0) == "0"
        assert format_calculator(-3) == "-3"

    def test_one_decimal(self):
        """Values with a single decimal keep one decimal."""
        assert format_calculator(0.5) == "0.5"
        assert format_calculator(1.2) == "1.2"

    def test_two_decimals(self):
        """Other values are rounded to two decimals."""
        assert format_calculator(0.123) == "0.12"
        assert format_calculator(2.456) == "2.46"


class TestSymbols:
    """Tests for symbolic parameters."""

    def test_known_symbol_kept(self):
        assert format_calculator("theta/2") == "theta/2"
        assert format_calculator("phi.alt") == "phi.alt"

    def test_unknown_identifier_quoted(self):
        assert format_calculator("foo*2") == '"foo"*2'
        assert format_calculator("theta.bad") == '"theta.bad"'

    def test_outer_brackets_removed(self):
        """A bracket pair wrapping the whole expression is dropped."""
        assert format_calculator("(alpha + 1)") == "alpha + 1"

    def test_inner_brackets_kept(self):
        """Brackets that do not wrap the whole expression stay."""
        assert format_calculator("(a)+(b)") == "(a)+(b)"

    def test_format_symbol_str(self):
        assert format_symbol_str("sigma") == "sigma"
        assert format_symbol_str("gate_time") == '"gate_time"'

    @pytest.mark.parametrize("name", [
        "aleph", "star", "approx", "dots", "prime", "infinity", "AA",
        "arrow.r", "arrow.l.r.double", "eq.not", "dots.h.c", "prime.double",
    ])
    def test_every_typst_symbol_kept(self, name):
        assert format_symbol_str(name) == name
        assert format_calculator(f"2*{name}") == f"2*{name}"

    @pytest.mark.parametrize("name", ["aleph.alt", "star.double", "arrow.sideways"])
    def test_unknown_variant_quoted(self, name):
        assert format_symbol_str(name) == f'"{name}"'


class TestCompositeValues:
    """Tests for complex numbers, matrices and gate inputs."""

    def test_complex_value(self):
        assert format_complex_value(1 + 0.5j) == "1+0.5i"
        assert format_complex_value(0) == "0+0i"

    def test_real_matrix(self):
        assert format_matrix(np.eye(2)) == "[1, 0; 0, 1]"

    def test_complex_matrix(self):
        matrix = np.array([[1, 0], [0, 1j]])
        assert format_matrix(matrix) == "[1+0i, 0+0i; 0+0i, 0+1i]"

    def test_qubit_input(self):
        assert format_qubit_input(2, "ctrl") == '2, label: "ctrl"'
