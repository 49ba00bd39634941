"""
Typst backend: document assembly and compilation to an image.

Example:
--------
    >>> from qollage.core import Circuit
    >>> from qollage.backend import circuit_into_typst_str, RenderPragmas
    >>>
    >>> circuit = Circuit().hadamard(0).cnot(0, 1)
    >>> print(circuit_into_typst_str(circuit, RenderPragmas.from_str("all")))
"""

import io
import logging
import re
import tempfile
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

import typst
from PIL import Image

from . import config
from .core import (
    Circuit,
    FontDownloadError,
    InitializationModeError,
    Operation,
    TypstCompilationError,
)
from .interface import (
    BOSON_PLACEHOLDER,
    CLASSICAL_PLACEHOLDER,
    CircuitLayout,
    flatten_multiple,
)

logger = logging.getLogger(__name__)

TYPST_HEADER = (
    "#set page(width: auto, height: auto, margin: 5pt)\n"
    f"#show math.equation: set text(font: \"{config.FONT_FAMILY}\")\n"
    "#{ \n"
    f"    import \"{config.QUILL_PACKAGE}\": *\n"
    "    quantum-circuit(\n"
)

_LINE_END = " [\\ ],\n"

_BOSON_INDEX = re.compile(re.escape(BOSON_PLACEHOLDER) + r"(\d+)")
_CLASSICAL_INDEX = re.compile(re.escape(CLASSICAL_PLACEHOLDER) + r"(\d+)")


class InitializationMode(Enum):
    """How the start of every line is labelled"""
    STATE = "state"   # |0>
    QUBIT = "qubit"   # q[n]

    @classmethod
    def from_str(cls, value: str) -> 'InitializationMode':
        try:
            return cls(value.lower())
        except ValueError:
            raise InitializationModeError(
                f"Unknown initialization mode {value!r}, expected 'state' or 'qubit'") from None


@dataclass
class RenderPragmas:
    """
    Which pragma operations are drawn.

    mode is "all", "none" or "partial"; in the partial case only the pragmas
    named in `pragmas` are drawn.
    """
    mode: str = "all"
    pragmas: List[str] = field(default_factory=list)

    @classmethod
    def from_str(cls, value: str) -> 'RenderPragmas':
        """
        Parse "all", "none" (any case) or a comma-separated list of pragma names.

        Entries that are not pragma names are dropped, so parsing never fails.
        """
        lowered = value.lower()
        if lowered in ("all", "none"):
            return cls(lowered)
        names = [name.strip() for name in value.split(",")]
        return cls("partial", [name for name in names if name.startswith("Pragma")])

    def renders(self, operation: Operation) -> bool:
        if not operation.is_pragma or self.mode == "all":
            return True
        if self.mode == "none":
            return False
        return operation.hqslang in self.pragmas


def _resolve_placeholders(gate: str, n_qubits: int, n_bosons: int) -> str:
    gate = _BOSON_INDEX.sub(lambda match: str(int(match.group(1)) + n_qubits), gate)
    return _CLASSICAL_INDEX.sub(lambda match: str(int(match.group(1)) + n_qubits + n_bosons), gate)


def _initial_state(mode: Optional[InitializationMode], index: int) -> str:
    if mode == InitializationMode.QUBIT:
        return f"q[{index}]"
    return "|0>"


def circuit_into_typst_str(circuit: Circuit,
                           render_pragmas: Optional[RenderPragmas] = None,
                           initialization_mode: Optional[InitializationMode] = None) -> str:
    """
    Convert a circuit into a Typst document drawing it.

    Args:
        circuit: Circuit to draw
        render_pragmas: Pragmas to draw (default: all)
        initialization_mode: Labelling of the line starts (default: |0>)

    Returns:
        str: Typst source

    Raises:
        OperationNotSupportedError: Operation without a drawing
        InvalidOperationError: Operation content that cannot be drawn
    """
    render_pragmas = render_pragmas or RenderPragmas()
    layout = CircuitLayout()
    for operation in circuit:
        if not render_pragmas.renders(operation):
            continue
        layout.add_gate(operation)

    qubits, bosons, classical = layout.circuit_gates, layout.bosonic_gates, layout.classical_gates
    n_qubits, n_bosons = len(qubits), len(bosons)
    flatten_multiple(qubits, bosons, range(n_qubits), range(n_bosons))
    flatten_multiple(qubits, classical, range(n_qubits), range(len(classical)))
    flatten_multiple(bosons, classical, range(n_bosons), range(len(classical)))
    logger.debug("Laid out %d qubit, %d bosonic and %d classical lines",
                 n_qubits, n_bosons, len(classical))

    lines = []
    for index, gates in enumerate(qubits):
        label = ', label: "Qubits"' if index == 0 else ""
        cells = ", ".join(_resolve_placeholders(gate, n_qubits, n_bosons) for gate in gates)
        lines.append(f"       lstick(${_initial_state(initialization_mode, index)}$"
                     f"{label}), {cells}, 1,{_LINE_END}")
    for index, gates in enumerate(bosons):
        label = ', label: "Bosons"' if index == 0 else ""
        lines.append(f"       lstick(${_initial_state(initialization_mode, index)}$"
                     f"{label}), {', '.join(gates)}, 1,{_LINE_END}")
    for gates in classical:
        lines.append(f"       {', '.join(gates)}, 1,{_LINE_END}")

    typst_str = TYPST_HEADER + "".join(lines)
    if typst_str.endswith(_LINE_END):
        typst_str = typst_str[:-len(_LINE_END)]
    return typst_str + ")\n}\n"


class TypstBackend:
    """
    Compiles Typst documents with the bundled equation font.

    Args:
        typst_str: Typst source to compile
        font_path: Location of the Fira Math font; downloaded when missing
    """

    def __init__(self, typst_str: str, font_path: Optional[Union[str, Path]] = None):
        self.typst_str = typst_str
        self.font_path = Path(font_path) if font_path is not None else config.get_font_path()
        if not self.font_path.exists():
            self.download_font(self.font_path)

    @staticmethod
    def download_font(path: Path, url: Optional[str] = None) -> Path:
        """
        Download the Fira Math font.

        Raises:
            FontDownloadError: The font could not be fetched or written
        """
        url = url or config.FONT_URL
        logger.info("Downloading equation font from %s", url)
        try:
            with urllib.request.urlopen(url, timeout=config.DOWNLOAD_TIMEOUT) as response:
                content = response.read()
        except (urllib.error.URLError, OSError) as err:
            raise FontDownloadError(f"Couldn't download the font file: {err}.") from err
        partial = path.with_name(path.name + ".part")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            partial.write_bytes(content)
            partial.replace(path)
        except OSError as err:
            if partial.exists():
                partial.unlink()
            raise FontDownloadError(f"Couldn't write the font file: {err}.") from err
        return path

    def compile(self, pixels_per_point: float = config.DEFAULT_PIXEL_PER_POINT) -> Image.Image:
        """
        Compile the document and render its first page.

        Returns:
            PIL.Image.Image: RGBA image on a white background

        Raises:
            TypstCompilationError: The compiler rejected the document
        """
        with tempfile.TemporaryDirectory(prefix="qollage_") as tmp_dir:
            source = Path(tmp_dir) / "circuit.typ"
            source.write_text(self.typst_str, encoding="utf-8")
            try:
                pages = typst.compile(
                    str(source),
                    font_paths=[str(self.font_path.parent)],
                    format="png",
                    ppi=pixels_per_point * 72.0,
                    package_cache_path=str(config.get_package_cache_dir()),
                )
            except RuntimeError as err:
                raise TypstCompilationError(f"Error during the Typst compilation: {err}") from err

        if isinstance(pages, list):
            if not pages:
                raise TypstCompilationError("Typst document has no pages.")
            pages = pages[0]
        page = Image.open(io.BytesIO(pages)).convert("RGBA")
        background = Image.new("RGBA", page.size, (255, 255, 255, 255))
        return Image.alpha_composite(background, page)


def circuit_to_image(circuit: Circuit,
                     pixels_per_point: Optional[float] = None,
                     render_pragmas: Optional[RenderPragmas] = None,
                     initialization_mode: Optional[InitializationMode] = None) -> Image.Image:
    """
    Render a circuit to an image.

    Args:
        circuit: Circuit to draw
        pixels_per_point: Image scale (default 3.0)
        render_pragmas: Pragmas to draw (default: all)
        initialization_mode: Labelling of the line starts

    Returns:
        PIL.Image.Image: The rendered circuit
    """
    typst_str = circuit_into_typst_str(circuit, render_pragmas, initialization_mode)
    backend = TypstBackend(typst_str)
    if pixels_per_point is None:
        pixels_per_point = config.DEFAULT_PIXEL_PER_POINT
    return backend.compile(pixels_per_point)
