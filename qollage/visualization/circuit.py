"""
Quantum Circuit Drawing

Entry points turning circuits into Typst sources, PNG files and matplotlib
figures.

Example:
--------
    >>> from qollage import Circuit
    >>> from qollage.visualization import draw_circuit, save_circuit
    >>>
    >>> circuit = Circuit().definition_bit("ro", 2, True)
    >>> circuit.hadamard(0).cnot(0, 1)
    >>> circuit.measure_qubit(0, "ro", 0).measure_qubit(1, "ro", 1)
    >>> fig = draw_circuit(circuit)  # Returns matplotlib figure
    >>> save_circuit(circuit, "bell")  # Writes bell.png
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from .. import config
from ..backend import (
    InitializationMode,
    RenderPragmas,
    circuit_into_typst_str,
    circuit_to_image,
)
from ..core import convert_into_circuit

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "circuit.png"


def _parse_mode(initialization_mode: Optional[str]) -> Optional[InitializationMode]:
    if initialization_mode is None:
        return None
    return InitializationMode.from_str(initialization_mode)


def resolve_output_path(path: Optional[Union[str, Path]] = None) -> Path:
    """
    Where save_circuit writes its image.

    None gives "circuit.png", an existing directory gives "<dir>/circuit.png",
    anything else gets a ".png" suffix unless it already ends with one.
    """
    if path is None:
        return Path(DEFAULT_FILE_NAME)
    path = Path(path)
    if path.is_dir():
        return path / DEFAULT_FILE_NAME
    if path.name.endswith(".png"):
        return path
    return path.with_name(path.name + ".png")


def circuit_to_typst_str(circuit: Any, render_pragmas: str = "all",
                         initialization_mode: Optional[str] = None) -> str:
    """
    Typst source drawing the circuit.

    Args:
        circuit: Circuit to draw (qollage or qoqo circuit, or its JSON)
        render_pragmas: "all", "none" or "PragmaOperation1, PragmaOperation2"
        initialization_mode: "state" for |0>, "qubit" for q[n] (default state)

    Raises:
        TypeError: Circuit conversion error
        ValueError: Operation not supported or unknown initialization mode
    """
    circuit = convert_into_circuit(circuit)
    return circuit_into_typst_str(circuit, RenderPragmas.from_str(render_pragmas),
                                  _parse_mode(initialization_mode))


def save_circuit(circuit: Any, path: Optional[Union[str, Path]] = None,
                 pixel_per_point: float = config.DEFAULT_PIXEL_PER_POINT,
                 render_pragmas: str = "all",
                 initialization_mode: Optional[str] = None) -> Path:
    """
    Save the circuit as a PNG image.

    Args:
        circuit: Circuit to draw
        path: Output file or directory (default "circuit.png")
        pixel_per_point: Image scale. Larger values give bigger images
            but take longer to render
        render_pragmas: "all", "none" or "PragmaOperation1, PragmaOperation2"
        initialization_mode: "state" for |0>, "qubit" for q[n]

    Returns:
        Path: The written file

    Raises:
        TypeError: Circuit conversion error
        ValueError: Operation not supported or compilation failure
    """
    circuit = convert_into_circuit(circuit)
    image = circuit_to_image(circuit, pixel_per_point, RenderPragmas.from_str(render_pragmas),
                             _parse_mode(initialization_mode))
    output = resolve_output_path(path)
    image.save(output, format="PNG")
    logger.info("Circuit saved to %s", output)
    return output


def draw_circuit(circuit: Any, pixel_per_point: float = config.DEFAULT_PIXEL_PER_POINT,
                 render_pragmas: str = "all",
                 initialization_mode: Optional[str] = None) -> 'plt.Figure':
    """
    Render the circuit into a matplotlib figure.

    Args:
        circuit: Circuit to draw
        pixel_per_point: Image scale
        render_pragmas: "all", "none" or "PragmaOperation1, PragmaOperation2"
        initialization_mode: "state" for |0>, "qubit" for q[n]

    Returns:
        matplotlib Figure showing the rendered image
    """
    if not HAS_MATPLOTLIB:
        raise ImportError("matplotlib is required for draw_circuit(). "
                          "Install with: pip install qollage[viz]")

    circuit = convert_into_circuit(circuit)
    image = circuit_to_image(circuit, pixel_per_point, RenderPragmas.from_str(render_pragmas),
                             _parse_mode(initialization_mode))

    dpi = 100
    width, height = image.size
    fig, ax = plt.subplots(figsize=(width / dpi, height / dpi), dpi=dpi)
    ax.imshow(np.asarray(image))
    ax.axis('off')
    fig.subplots_adjust(left=0, right=1, top=1, bottom=0)
    return fig
