"""
Qollage - Visualization Module

Modules:
--------
circuit : Circuit drawing entry points
    draw_circuit - Render a circuit into a matplotlib figure
    save_circuit - Write a circuit image to a PNG file
    circuit_to_typst_str - Typst source of the drawing
"""

from .circuit import circuit_to_typst_str, draw_circuit, resolve_output_path, save_circuit

__all__ = [
    'circuit_to_typst_str',
    'draw_circuit',
    'resolve_output_path',
    'save_circuit',
]
