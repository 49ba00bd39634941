"""
Pytest configuration and fixtures for qollage tests.
"""

import io
import json
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add the repository root to path so qollage can be imported without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from qollage import Circuit  # noqa: E402


# =============================================================================
# Test Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line(
        "markers", "viz: marks tests requiring matplotlib"
    )
    config.addinivalue_line(
        "markers", "qoqo: marks tests requiring the qoqo package"
    )


# =============================================================================
# Fixtures - Circuits
# =============================================================================

@pytest.fixture
def bell_circuit():
    """H on qubit 0 followed by CNOT(0, 1)."""
    return Circuit().hadamard(0).cnot(0, 1)


@pytest.fixture
def measured_bell_circuit():
    """Bell circuit measured into a two-bit register 'ro'."""
    circuit = Circuit().definition_bit("ro", 2, True)
    circuit.hadamard(0).cnot(0, 1)
    circuit.measure_qubit(0, "ro", 0).measure_qubit(1, "ro", 1)
    return circuit


@pytest.fixture
def serialized_circuit():
    """Circuit in the roqoqo JSON layout."""
    return json.dumps({
        "definitions": [
            {"DefinitionBit": {"name": "ro", "length": 2, "is_output": True}},
        ],
        "operations": [
            {"Hadamard": {"qubit": 0}},
            {"CNOT": {"control": 0, "target": 1}},
            {"PragmaSetStateVector": {
                "statevector": {"v": 1, "dim": [2], "data": [[1.0, 0.0], [0.0, 0.0]]},
            }},
            {"PragmaRepeatedMeasurement": {
                "readout": "ro",
                "number_measurements": 10,
                "qubit_mapping": {"0": 1, "1": 0},
            }},
        ],
        "_roqoqo_version": {"major_version": 1, "minor_version": 0},
    })


# =============================================================================
# Fixtures - Rendering
# =============================================================================

@pytest.fixture
def png_bytes():
    """A small half-transparent PNG page as returned by the Typst compiler."""
    buffer = io.BytesIO()
    Image.new("RGBA", (12, 8), (0, 0, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def cache_dir(tmp_path, monkeypatch):
    """Cache directory holding a (dummy) equation font."""
    monkeypatch.setenv("QOLLAGE_CACHE_DIR", str(tmp_path / "cache"))
    font_dir = tmp_path / "cache" / "fonts"
    font_dir.mkdir(parents=True)
    (font_dir / "FiraMath.otf").write_bytes(b"font")
    return tmp_path / "cache"


@pytest.fixture
def fake_image(monkeypatch):
    """Replace circuit rendering with a fixed 20x10 white image."""
    import importlib
    module = importlib.import_module("qollage.visualization.circuit")
    calls = []

    def _render(circuit, pixels_per_point, render_pragmas, initialization_mode):
        calls.append((circuit, pixels_per_point, render_pragmas, initialization_mode))
        return Image.new("RGBA", (20, 10), (255, 255, 255, 255))

    monkeypatch.setattr(module, "circuit_to_image", _render)
    return calls


# =============================================================================
# Conditional Fixtures
# =============================================================================

@pytest.fixture
def matplotlib_available():
    """Check if matplotlib is available."""
    try:
        import matplotlib
        matplotlib.use("Agg")
        return True
    except ImportError:
        pytest.skip("matplotlib not available")
        return False
