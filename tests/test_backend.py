"""
Tests for Typst document assembly and compilation.
"""

import io
import urllib.error
from pathlib import Path

import pytest
from PIL import Image

from qollage import (
    Circuit,
    FontDownloadError,
    InitializationMode,
    InitializationModeError,
    Operation,
    RenderPragmas,
    TypstBackend,
    TypstCompilationError,
    circuit_into_typst_str,
)
from qollage import backend

HEADER = (
    "#set page(width: auto, height: auto, margin: 5pt)\n"
    '#show math.equation: set text(font: "Fira Math")\n'
    "#{ \n"
    '    import "@preview/quill:0.2.1": *\n'
    "    quantum-circuit(\n"
)
FOOTER = ")\n}\n"


class TestInitializationMode:
    """Tests for parsing the initialization mode."""

    def test_from_str(self):
        assert InitializationMode.from_str("state") == InitializationMode.STATE
        assert InitializationMode.from_str("Qubit") == InitializationMode.QUBIT

    def test_unknown_mode(self):
        with pytest.raises(InitializationModeError):
            InitializationMode.from_str("ket")
        with pytest.raises(ValueError):
            InitializationMode.from_str("")


class TestRenderPragmas:
    """Tests for pragma filtering options."""

    def test_all_and_none(self):
        assert RenderPragmas.from_str("ALL").mode == "all"
        assert RenderPragmas.from_str("None").mode == "none"

    def test_partial_list(self):
        pragmas = RenderPragmas.from_str("PragmaSleep, Hadamard ,PragmaGlobalPhase")
        assert pragmas.mode == "partial"
        assert pragmas.pragmas == ["PragmaSleep", "PragmaGlobalPhase"]

    def test_renders(self):
        sleep = Operation("PragmaSleep", {"qubits": [0], "sleep_time": 1.0})
        phase = Operation("PragmaGlobalPhase", {"phase": 1.0})
        hadamard = Operation("Hadamard", {"qubit": 0})
        partial = RenderPragmas.from_str("PragmaSleep")
        assert partial.renders(sleep)
        assert not partial.renders(phase)
        assert partial.renders(hadamard)
        assert not RenderPragmas.from_str("none").renders(sleep)
        assert RenderPragmas.from_str("none").renders(hadamard)


class TestTypstString:
    """Tests for the generated Typst documents."""

    def test_single_gate(self):
        typst_str = circuit_into_typst_str(Circuit().hadamard(0))
        assert typst_str == HEADER + '       lstick($|0>$, label: "Qubits"), $ H $, 1,' + FOOTER

    def test_bell_circuit(self, bell_circuit):
        assert circuit_into_typst_str(bell_circuit) == (
            HEADER
            + '       lstick($|0>$, label: "Qubits"), $ H $, ctrl(1), 1, [\\ ],\n'
            + "       lstick($|0>$), 1, targ(), 1," + FOOTER
        )

    def test_lines_are_flattened(self):
        typst_str = circuit_into_typst_str(Circuit().cnot(0, 2).hadamard(1))
        assert typst_str == (
            HEADER
            + '       lstick($|0>$, label: "Qubits"), ctrl(2), 1, 1, [\\ ],\n'
            + "       lstick($|0>$), 1, $ H $, 1, [\\ ],\n"
            + "       lstick($|0>$), targ(), 1, 1," + FOOTER
        )

    def test_measurement_wired_to_register(self):
        circuit = Circuit().definition_bit("ro", 1, True).hadamard(0).measure_qubit(0, "ro", 0)
        assert circuit_into_typst_str(circuit) == (
            HEADER
            + '       lstick($|0>$, label: "Qubits"), $ H $, meter(target:1-0), 1, [\\ ],\n'
            + '       lstick($ "ro : " $), setwire(2), 1, '
            + "ctrl(0, label: (content: $ 0 $, pos: bottom)), 1," + FOOTER
        )

    def test_qubit_initialization(self):
        typst_str = circuit_into_typst_str(Circuit().hadamard(0).hadamard(1), None,
                                           InitializationMode.QUBIT)
        assert '       lstick($q[0]$, label: "Qubits"), $ H $, 1, [\\ ],\n' in typst_str
        assert "       lstick($q[1]$), $ H $, 1," + FOOTER in typst_str

    def test_pragmas_filtered(self):
        circuit = Circuit().hadamard(0).add("PragmaGlobalPhase", phase=1.0)
        hidden = circuit_into_typst_str(circuit, RenderPragmas.from_str("none"))
        assert hidden == circuit_into_typst_str(Circuit().hadamard(0))
        shown = circuit_into_typst_str(circuit, RenderPragmas.from_str("all"))
        assert 'slice(label: $ "GlobalPhase"\\ p=1 $)' in shown

    def test_bosonic_line(self):
        circuit = Circuit().add("Squeezing", mode=0, squeezing=0.5, phase=0.0)
        assert circuit_into_typst_str(circuit) == (
            HEADER + '       lstick($|0>$, label: "Bosons"), gate($ "Squeezing"(0.5,0) $), 1,'
            + FOOTER
        )

    def test_boson_placeholder_resolved(self):
        circuit = Circuit().add("QuantumRabi", qubit=0, mode=0, theta=0.1)
        assert circuit_into_typst_str(circuit) == (
            HEADER
            + '       lstick($|0>$, label: "Qubits"), '
            + "mqgate($ 0.1 * X $, extent: 1.4em, target: 1-0), 1, [\\ ],\n"
            + '       lstick($|0>$, label: "Bosons"), gate($ 0.1*(b^(dagger)+b) $), 1,'
            + FOOTER
        )

    def test_empty_circuit(self):
        assert circuit_into_typst_str(Circuit()) == HEADER + FOOTER

    def test_register_index_above_nine(self):
        circuit = Circuit()
        for register in range(11):
            circuit.definition_bit(f"r{register}", 1, True)
        circuit.measure_qubit(0, "r10", 0)
        expected = HEADER + '       lstick($|0>$, label: "Qubits"), meter(target:11-0), 1, [\\ ],\n'
        for register in range(10):
            expected += f'       lstick($ "r{register} : " $), setwire(2), 1, 1, [\\ ],\n'
        expected += ('       lstick($ "r10 : " $), setwire(2), '
                     "ctrl(0, label: (content: $ 0 $, pos: bottom)), 1," + FOOTER)
        assert circuit_into_typst_str(circuit) == expected


class TestTypstBackend:
    """Tests for font handling and compilation."""

    def test_existing_font_is_used(self, cache_dir, monkeypatch):
        def _fail(*args, **kwargs):
            raise AssertionError("font should not be downloaded")

        monkeypatch.setattr(backend.urllib.request, "urlopen", _fail)
        typst_backend = TypstBackend("")
        assert typst_backend.font_path == cache_dir / "fonts" / "FiraMath.otf"

    def test_font_download(self, tmp_path, monkeypatch):
        monkeypatch.setattr(backend.urllib.request, "urlopen",
                            lambda url, timeout: io.BytesIO(b"otf-data"))
        font_path = tmp_path / "fonts" / "FiraMath.otf"
        TypstBackend("", font_path=font_path)
        assert font_path.read_bytes() == b"otf-data"

    def test_font_download_failure(self, tmp_path, monkeypatch):
        def _offline(url, timeout):
            raise urllib.error.URLError("offline")

        monkeypatch.setattr(backend.urllib.request, "urlopen", _offline)
        with pytest.raises(FontDownloadError):
            TypstBackend("", font_path=tmp_path / "fonts" / "FiraMath.otf")

    def test_font_written_in_one_step(self, tmp_path, monkeypatch):
        monkeypatch.setattr(backend.urllib.request, "urlopen",
                            lambda url, timeout: io.BytesIO(b"otf-data"))
        font_path = tmp_path / "fonts" / "FiraMath.otf"
        TypstBackend("", font_path=font_path)
        assert sorted(p.name for p in font_path.parent.iterdir()) == ["FiraMath.otf"]

    def test_interrupted_write_leaves_no_font(self, tmp_path, monkeypatch):
        """A partly written file is never taken for a cached font."""
        def _write_half(self, data):
            with open(self, "wb") as handle:
                handle.write(data[:3])
            raise OSError("disk full")

        monkeypatch.setattr(backend.urllib.request, "urlopen",
                            lambda url, timeout: io.BytesIO(b"otf-data"))
        monkeypatch.setattr(Path, "write_bytes", _write_half)
        font_path = tmp_path / "fonts" / "FiraMath.otf"
        with pytest.raises(FontDownloadError, match="disk full"):
            TypstBackend("", font_path=font_path)
        assert list(font_path.parent.iterdir()) == []

    def test_compile(self, cache_dir, png_bytes, monkeypatch):
        calls = {}

        def _compile(source, font_paths, format, ppi, package_cache_path):
            with open(source, encoding="utf-8") as handle:
                calls["source"] = handle.read()
            calls["font_paths"] = font_paths
            calls["ppi"] = ppi
            calls["package_cache_path"] = package_cache_path
            return png_bytes

        monkeypatch.setattr(backend.typst, "compile", _compile)
        image = TypstBackend("#circuit").compile(2.0)

        assert calls["source"] == "#circuit"
        assert calls["font_paths"] == [str(cache_dir / "fonts")]
        assert calls["ppi"] == pytest.approx(144.0)
        assert calls["package_cache_path"] == str(cache_dir / "cache")
        assert image.mode == "RGBA"
        assert image.size == (12, 8)
        assert image.getpixel((0, 0)) == (255, 255, 255, 255)

    def test_compile_multiple_pages(self, cache_dir, png_bytes, monkeypatch):
        monkeypatch.setattr(backend.typst, "compile", lambda *args, **kwargs: [png_bytes, b""])
        assert TypstBackend("").compile().size == (12, 8)

    def test_compile_error(self, cache_dir, monkeypatch):
        def _reject(*args, **kwargs):
            raise RuntimeError("unknown variable: foo")

        monkeypatch.setattr(backend.typst, "compile", _reject)
        with pytest.raises(TypstCompilationError, match="unknown variable"):
            TypstBackend("#foo").compile()

    def test_circuit_to_image(self, cache_dir, png_bytes, monkeypatch, bell_circuit):
        sources = []

        def _compile(source, **kwargs):
            with open(source, encoding="utf-8") as handle:
                sources.append(handle.read())
            return png_bytes

        monkeypatch.setattr(backend.typst, "compile", _compile)
        image = backend.circuit_to_image(bell_circuit)
        assert isinstance(image, Image.Image)
        assert sources == [circuit_into_typst_str(bell_circuit)]
