"""
Typst formatting helpers for gate parameters.

Gate parameters are either plain numbers or symbolic expressions (strings
such as "theta/2"). Numbers are rounded and common constants are shown by
name; identifiers in symbolic expressions are kept as Typst symbols when Typst
knows them and quoted otherwise.
"""

import math
import re
from typing import Any, Union

import numpy as np

from . import symbols

EPSILON = 1e-6

_NAMED_CONSTANTS = [
    (math.pi, "pi"),
    (-math.pi, "-pi"),
    (math.pi / 2, "pi/2"),
    (-math.pi / 2, "-pi/2"),
    (math.pi / 4, "pi/4"),
    (-math.pi / 4, "-pi/4"),
    (math.sqrt(2), "sqrt(2)"),
    (-math.sqrt(2), "-sqrt(2)"),
    (1 / math.sqrt(2), "1/sqrt(2)"),
    (-1 / math.sqrt(2), "-1/sqrt(2)"),
]

TYPST_SYMBOLS = symbols.TYPST_SYMBOLS

_IDENTIFIER = re.compile(r"[a-zA-Z][\w.]+")


def format_symbol_str(str_value: str) -> str:
    """
    Formats a string for a Typst math expression.

    Known Typst symbols (optionally with a known variant, e.g. "theta.alt")
    are kept as they are, everything else is put inside quotes.
    """
    main_variant, _, sup = str_value.partition(".")
    variants = TYPST_SYMBOLS.get(main_variant)
    if variants is not None and (sup == "" or sup in variants):
        return str_value
    return f'"{str_value}"'


def _strip_outer_brackets(value: str) -> str:
    if not (value.startswith("(") and value.endswith(")")):
        return value
    depth = 1
    for char in value[1:-1]:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if depth == 0:
            # The first bracket closes before the end: not a wrapping pair
            return value
    return value[1:-1]


def format_float(value: float) -> str:
    for constant, name in _NAMED_CONSTANTS:
        if abs(value - constant) < EPSILON:
            return name
    if float(value).is_integer():
        return f"{value:.0f}"
    if float(value * 10.0).is_integer():
        return f"{value:.1f}"
    return f"{value:.2f}"


def format_calculator(value: Union[float, int, str]) -> str:
    """
    Formats a gate parameter to be displayed in a Typst representation.

    Args:
        value: Number or symbolic expression

    Returns:
        str: The parameter's Typst representation
    """
    if isinstance(value, str):
        stripped = _strip_outer_brackets(value)
        return _IDENTIFIER.sub(lambda match: format_symbol_str(match.group(0)), stripped)
    return format_float(float(value))


def format_complex_value(value: Any) -> str:
    value = complex(value)
    return f"{format_float(value.real)}+{format_float(value.imag)}i"


def format_matrix(matrix: Any) -> str:
    """Formats a matrix as "[a, b; c, d]" using format_complex_value/format_float."""
    array = np.atleast_2d(np.asarray(matrix))
    formatter = format_complex_value if np.iscomplexobj(array) else format_float
    rows = [", ".join(formatter(entry) for entry in row) for row in array]
    return "[" + "; ".join(rows) + "]"


def format_qubit_input(qubit: int, label: str) -> str:
    """Formats a qubit as an input of a quill multi-qubit gate."""
    return f'{qubit}, label: "{label}"'
