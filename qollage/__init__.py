"""
Qollage Circuit Drawing
=======================

Draws quantum circuits through Typst and the quill package.

Features:
- Qubit, bosonic-mode and classical-register lines
- Measurements wired to classical registers
- Pragma filtering and gate groups around nested circuits
- PNG export and matplotlib figures
- Reads qoqo circuits through their JSON serialization

Quick Start:
    >>> from qollage import Circuit, circuit_to_typst_str, draw_circuit
    >>> circuit = Circuit().hadamard(0).cnot(0, 1)
    >>> print(circuit_to_typst_str(circuit))
    >>> fig = draw_circuit(circuit)
"""

import logging

__version__ = "0.1.0"
__author__ = "qollage developers"

from .core import (
    ALL,
    Circuit,
    CircuitConversionError,
    FontDownloadError,
    InitializationModeError,
    InvalidOperationError,
    Operation,
    OperationNotSupportedError,
    QollageError,
    TypstCompilationError,
    convert_into_circuit,
)

from .backend import (
    InitializationMode,
    RenderPragmas,
    TypstBackend,
    circuit_into_typst_str,
    circuit_to_image,
)

from .algorithms import remove_two_qubit_gates_identities

from .visualization import circuit_to_typst_str, draw_circuit, save_circuit

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'ALL',
    'Circuit',
    'Operation',
    'convert_into_circuit',
    'QollageError',
    'CircuitConversionError',
    'OperationNotSupportedError',
    'InvalidOperationError',
    'InitializationModeError',
    'FontDownloadError',
    'TypstCompilationError',
    'InitializationMode',
    'RenderPragmas',
    'TypstBackend',
    'circuit_into_typst_str',
    'circuit_to_image',
    'remove_two_qubit_gates_identities',
    'circuit_to_typst_str',
    'draw_circuit',
    'save_circuit',
]
