"""
Circuit layout for the Typst/quill renderer.

A circuit is laid out on three groups of horizontal lines: qubits, bosonic
modes and classical registers. Every line is a list of quill cells ("$ H $",
"ctrl(1)", "targ()", "1" for an empty wire segment, ...). Vertical wires that
cross a line reserve a (line, column) slot in the matching lock list so that
no later gate is placed on top of them.
"""

import logging
import math
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .core import (
    ALL,
    Circuit,
    InvalidOperationError,
    Operation,
    OperationNotSupportedError,
)
from .formatting import (
    format_calculator as fc,
    format_complex_value,
    format_matrix,
    format_qubit_input,
)

logger = logging.getLogger(__name__)

Lines = List[List[str]]
Lock = List[Tuple[int, int]]

# Cells that do not take any horizontal space in the drawing
_NON_SPACING = ("slice", "gategroup", "lstick", "setwire")

# Operations that are ignored by the backend and do not raise
ALLOWED_OPERATIONS = ("DefinitionFloat", "DefinitionComplex", "DefinitionUsize")

# Placeholders resolved once the number of qubit and bosonic lines is known
BOSON_PLACEHOLDER = "replace_by_n_qubits_plus_"
CLASSICAL_PLACEHOLDER = "replace_by_classical_len_"

_GROUP_STROKE = 'stroke: (dash: "dotted")'
_SOLID_STROKE = 'stroke: (paint: black, thickness: 1pt, dash: "solid")'


# ============================================================================
# Line helpers
# ============================================================================

def effective_len(gates: Sequence[str]) -> int:
    """Number of columns a line takes in the image."""
    return len(gates) - sum(1 for gate in gates if any(key in gate for key in _NON_SPACING))


def add_lines(lines: Lines, indices: Iterable[int]) -> None:
    """Adds empty lines until every index in `indices` exists."""
    highest = max(indices, default=0)
    while len(lines) <= highest:
        lines.append([])


def flatten_lines(lines: Lines, indices: Iterable[int]) -> None:
    """
    Pads the given lines with empty wire segments to a common length.

    Example:
        >>> lines = [["$ H $", "1"], ["$ X $"], []]
        >>> flatten_lines(lines, [0, 2])
        >>> lines
        [['$ H $', '1'], ['$ X $'], ['1', '1']]
    """
    indices = list(indices)
    flatten_multiple(lines, [], indices, [])


def flatten_multiple(lines_1: Lines, lines_2: Lines,
                     indices_1: Iterable[int], indices_2: Iterable[int]) -> None:
    """Pads lines from two line groups to a common length."""
    indices_1 = list(indices_1)
    indices_2 = list(indices_2)
    max_len = max(
        [effective_len(lines_1[i]) for i in indices_1]
        + [effective_len(lines_2[i]) for i in indices_2],
        default=0,
    )
    for lines, indices in ((lines_1, indices_1), (lines_2, indices_2)):
        for index in indices:
            while effective_len(lines[index]) < max_len:
                lines[index].append("1")


def push_ones(lines: Lines, low: int, high: int) -> None:
    """Adds an empty segment to the lines strictly below `low` down to `high`."""
    for gates in lines[low + 1:high + 1]:
        gates.append("1")


def release_lock(lines: Lines, lock: Lock, index: int) -> None:
    """Moves a line past the wire slots reserved on it."""
    slot = (index, effective_len(lines[index]))
    while slot in lock:
        lock[:] = [value for value in lock if value != slot]
        lines[index].append("1")
        slot = (index, effective_len(lines[index]))


# ============================================================================
# Gate tables
# ============================================================================

# Single-qubit gates: cell drawn on the qubit line
SINGLE_QUBIT_GATES: Dict[str, Callable[[Operation], str]] = {
    "Hadamard": lambda op: "$ H $",
    "PauliX": lambda op: "$ X $",
    "PauliY": lambda op: "$ Y $",
    "PauliZ": lambda op: "$ Z $",
    "SqrtPauliX": lambda op: "$ sqrt(X) $",
    "InvSqrtPauliX": lambda op: "$ sqrt(X)^(dagger) $",
    "SGate": lambda op: "$ S $",
    "TGate": lambda op: "$ T $",
    "Identity": lambda op: "$ I $",
    "RotateX": lambda op: f'gate($ "Rx"({fc(op["theta"])}) $)',
    "RotateY": lambda op: f'gate($ "Ry"({fc(op["theta"])}) $)',
    "RotateZ": lambda op: f'gate($ "Rz"({fc(op["theta"])}) $)',
    "PhaseShiftState1": lambda op: (
        f'gate($ "p1"({fc(op["theta"])}) $, label: "PhaseShiftState1")'),
    "PhaseShiftState0": lambda op: (
        f'gate($ "p0"({fc(op["theta"])}) $, label: "PhaseShiftState0")'),
    "RotateAroundSphericalAxis": lambda op: (
        f'gate($ "Rsph"({fc(op["theta"])},{fc(op["spherical_theta"])},'
        f'{fc(op["spherical_phi"])}) $, label: "RotateAroundSphericalAxis")'),
    "RotateXY": lambda op: f'gate($ "Rxy"({fc(op["theta"])},{fc(op["phi"])}) $)',
    "GPi": lambda op: f'gate($ "GPi"({fc(op["theta"])}) $)',
    "GPi2": lambda op: f'gate($ "GPi2"({fc(op["theta"])}) $)',
    "SingleQubitGate": lambda op: (
        f'gate($ U({fc(op["alpha_r"])}+{fc(op["alpha_i"])}i,'
        f'{fc(op["beta_r"])}+{fc(op["beta_i"])}i,{fc(op["global_phase"])}) $, '
        f'label: "SingleQubitGate")'),
    "PragmaActiveReset": lambda op: 'gate($ "Reset" $, fill: gray)',
    "PragmaDamping": lambda op: (
        f'gate($ "Damping"({fc(op["gate_time"])},{fc(op["rate"])}) $, fill: gray)'),
    "PragmaDepolarising": lambda op: (
        f'gate($ "Depolarising"({fc(op["gate_time"])},{fc(op["rate"])}) $, fill: gray)'),
    "PragmaDephasing": lambda op: (
        f'gate($ "Dephasing"({fc(op["gate_time"])},{fc(op["rate"])}) $, fill: gray)'),
    "PragmaRandomNoise": lambda op: (
        f'gate($ "RandomNoise"({fc(op["gate_time"])},{fc(op["depolarising_rate"])},'
        f'{fc(op["dephasing_rate"])}) $, fill: gray)'),
    "PragmaGeneralNoise": lambda op: (
        f'gate($ "GeneralNoise"({fc(op["gate_time"])},{format_matrix(op["rates"])}) $, '
        f'fill: gray)'),
}

# Controlled gates: cell drawn on the target line, a dot on the control line
CONTROLLED_GATES: Dict[str, Callable[[Operation], str]] = {
    "CNOT": lambda op: "targ()",
    "ControlledPhaseShift": lambda op: f'gate($ "PhaseShift"({fc(op["theta"])}) $)',
    "ControlledPauliY": lambda op: 'gate($ "Y" $)',
    "ControlledPauliZ": lambda op: 'gate($ "Z" $)',
    "ControlledRotateX": lambda op: f'gate($ "Rx"({fc(op["theta"])}) $)',
    "ControlledRotateXY": lambda op: (
        f'gate($ "Rxy"({fc(op["theta"])},{fc(op["phi"])}) $)'),
    "EchoCrossResonance": lambda op: 'gate($ "EchoCrossResonance" $)',
}

DOUBLY_CONTROLLED_GATES: Dict[str, Callable[[Operation], str]] = {
    "Toffoli": lambda op: "targ()",
    "ControlledControlledPauliZ": lambda op: "gate($ Z $)",
    "ControlledControlledPhaseShift": lambda op: (
        f'gate($ "PhaseShift"({fc(op["theta"])}) $)'),
}

# Swap-like gates: optional label of the swap cell
SWAP_GATES: Dict[str, Optional[str]] = {
    "SWAP": None,
    "ISwap": '"ISwap"',
    "FSwap": '"FSwap"',
    "SqrtISwap": '$ sqrt("ISwap") $',
    "InvSqrtISwap": '$ sqrt("ISwap")^(dagger) $',
}

# Two-qubit gates drawn as a box: (label, width, (control label, target label))
TWO_QUBIT_BOXES: Dict[str, Tuple[Callable[[Operation], str], str, Tuple[str, str]]] = {
    "XY": (lambda op: f'"XY"({fc(op["theta"])})', "5em", ("x", "x")),
    "MolmerSorensenXX": (lambda op: '"MolmerSorensenXX"', "9em", ("ctrl", "targ")),
    "VariableMSXX": (lambda op: f'"VariableMSXX"({fc(op["theta"])})', "10em", ("x", "x")),
    "GivensRotation": (
        lambda op: f'"GivensRotation"\\ ({fc(op["theta"])},{fc(op["phi"])})',
        "11em", ("ctrl", "targ")),
    "GivensRotationLittleEndian": (
        lambda op: f'"GivensRotationLE"\\ ({fc(op["theta"])},{fc(op["phi"])})',
        "12em", ("ctrl", "targ")),
    "Qsim": (
        lambda op: f'"Qsim"({fc(op["x"])},{fc(op["y"])},{fc(op["z"])})',
        "11em", ("x", "x")),
    "Fsim": (
        lambda op: f'"Fsim"({fc(op["t"])},{fc(op["u"])},{fc(op["delta"])})',
        "11em", ("x", "x")),
    "SpinInteraction": (
        lambda op: f'"SpinInteraction"\\ ({fc(op["x"])},{fc(op["y"])},{fc(op["z"])})',
        "12em", ("x", "x")),
    "Bogoliubov": (
        lambda op: f'"Bogoliubov"\\ ({fc(op["delta_real"])}+{fc(op["delta_imag"])}i)',
        "9em", ("x", "x")),
    "PMInteraction": (lambda op: f'"PMInteraction"\\ ({fc(op["t"])})', "9em", ("x", "x")),
    "ComplexPMInteraction": (
        lambda op: f'"ComplexPMInteraction"\\ ({fc(op["t_real"])},{fc(op["t_imag"])}i)',
        "12em", ("x", "x")),
    "PhaseShiftedControlledZ": (
        lambda op: f'"PhaseShiftedControlledZ"\\ ({fc(op["phi"])})',
        "15em", ("ctrl", "targ")),
    "PhaseShiftedControlledPhase": (
        lambda op: f'"PhaseShiftedControlledPhase"\\ ({fc(op["theta"])},{fc(op["phi"])})',
        "14em", ("ctrl", "targ")),
}


def _reordering(op: Operation) -> str:
    return "\n".join(f"{key}:{value}" for key, value in sorted(op["reordering_dictionary"].items()))


# Gates on an arbitrary qubit list drawn as a box: (label, width, gray fill)
MULTI_QUBIT_BOXES: Dict[str, Tuple[Callable[[Operation], str], str, bool]] = {
    "PragmaOverrotation": (
        lambda op: (f'"Overrotation"\\ ({fc(op["amplitude"])},{fc(op["variance"])})'
                    f'\\ "\\"{op["gate_hqslang"]}\\""'),
        "10em", True),
    "PragmaStopParallelBlock": (
        lambda op: f'"StopParallelBlock"\\ ({fc(op["execution_time"])})', "13em", True),
    "PragmaStartDecompositionBlock": (
        lambda op: f'"StartDecompositionBlock"\\ "{_reordering(op)}"', "14em", True),
    "PragmaStopDecompositionBlock": (lambda op: '"StopDecompositionBlock"', "13em", True),
    "PragmaSleep": (lambda op: f'"Sleep"({fc(op["sleep_time"])})', "7em", True),
    "MultiQubitMS": (lambda op: f'"MultiQubitMS"({fc(op["theta"])})', "11em", False),
    "MultiQubitZZ": (lambda op: f'"MultiQubitZZ"({fc(op["theta"])})', "11em", False),
}


def _state_vector(op: Operation) -> str:
    return ",".join(format_complex_value(value) for value in op["statevector"])


# Pragmas drawn as a vertical slice across the whole circuit
SLICES: Dict[str, Callable[[Operation], str]] = {
    "PragmaSetNumberOfMeasurements": lambda op: (
        f'slice(label: $ "Measurements\nn={op["number_measurements"]}" $)'),
    "PragmaSetStateVector": lambda op: (
        f'slice(label: $ "SetStatevector"\\ [{_state_vector(op)}] $, {_SOLID_STROKE})'),
    "PragmaSetDensityMatrix": lambda op: (
        f'slice(label: $ "SetDensityMatrix"\\ "{format_matrix(op["density_matrix"])}" $, '
        f'{_SOLID_STROKE})'),
    "PragmaRepeatGate": lambda op: (
        f'slice(label: $ "RepeatNextGate\\n{op["repetition_coefficient"]} times" $, '
        f'stroke: (paint: black, thickness: 1pt, dash: "densely-dash-dotted"))'),
    "PragmaBoostNoise": lambda op: (
        f'slice(label: $ "BoostNoise"\\ n={fc(op["noise_coefficient"])} $)'),
    "PragmaGlobalPhase": lambda op: f'slice(label: $ "GlobalPhase"\\ p={fc(op["phase"])} $)',
    "PragmaChangeDevice": lambda op: (
        f'slice(label: $ "ChangeDevice"\\ \\"{op["wrapped_hqslang"]}\\" $)'),
    "InputSymbolic": lambda op: (
        f'slice(label: $ "Replace Symbol:"\\ {op["name"]}=>{fc(op["input"])} $)'),
}

# Operations on a single bosonic mode
BOSONIC_GATES: Dict[str, Callable[[Operation], str]] = {
    "Squeezing": lambda op: f'gate($ "Squeezing"({fc(op["squeezing"])},{fc(op["phase"])}) $)',
    "PhaseShift": lambda op: f'gate($ "PhaseShift"({fc(op["phase"])}) $)',
    "PhaseDisplacement": lambda op: (
        f'gate($ "PhaseDisplacement"({fc(op["displacement"])},{fc(op["phase"])}) $)'),
    "PhotonDetection": lambda op: "meter()",
}

_EXCITATION = 'alpha"|0>" + beta"|1>"'

# Qubit-resonator couplings: (qubit cell, mode cell), the qubit cell still
# carries the target placeholder
QUBIT_MODE_GATES: Dict[str, Tuple[Callable[[Operation], str], Callable[[Operation], str]]] = {
    "QuantumRabi": (
        lambda op: f'mqgate($ {fc(op["theta"])} * X $, extent: 1.4em, target: ',
        lambda op: f'gate($ {fc(op["theta"])}*(b^(dagger)+b) $)'),
    "LongitudinalCoupling": (
        lambda op: f'mqgate($ {fc(op["theta"])} * Z $, extent: 1.4em, target: ',
        lambda op: f'gate($ {fc(op["theta"])}*(b^(dagger)+b) $)'),
    "JaynesCummings": (
        lambda op: f'mqgate($ {fc(op["theta"])} * (sigma^-+sigma^+) $, extent: 1.4em, target: ',
        lambda op: f'gate($ {fc(op["theta"])}*(b^(dagger)+b) $)'),
    "SingleExcitationStore": (
        lambda op: f'mqgate($ {_EXCITATION} -> "|0>" $, target: ',
        lambda op: f'gate($ "|0>" -> {_EXCITATION} $)'),
    "SingleExcitationLoad": (
        lambda op: f'mqgate($ "|0>" -> {_EXCITATION} $, target: ',
        lambda op: f'gate($ {_EXCITATION} -> "|0>" $)'),
}

_PAULI_OPERATIONS = {0: "Identity", 1: "PauliX", 2: "PauliY", 3: "PauliZ"}


def _loop_repetitions(value) -> str:
    if isinstance(value, str):
        return fc(value)
    return str(int(math.floor(value)))


# ============================================================================
# Layout
# ============================================================================

class CircuitLayout:
    """
    Lays out circuit operations as quill cells.

    Example:
        >>> layout = CircuitLayout()
        >>> for operation in circuit:
        ...     layout.add_gate(operation)
        >>> layout.circuit_gates
        [['$ H $', 'ctrl(1)'], ['1', 'targ()']]
    """

    def __init__(self):
        self.circuit_gates: Lines = []
        self.bosonic_gates: Lines = []
        self.classical_gates: Lines = []
        self.circuit_lock: Lock = []
        self.bosonic_lock: Lock = []
        self.classical_lock: Lock = []

    # ------------------------------------------------------------------
    # Preparation steps
    # ------------------------------------------------------------------

    def _used_qubits(self, involved) -> List[int]:
        if involved == ALL:
            return list(range(len(self.circuit_gates)))
        return sorted(involved)

    def _prepare_for_slice(self) -> None:
        gates = self.circuit_gates
        add_lines(gates, [0])
        slices = [gate for gate in gates[0] if "slice" in gate or "gategroup" in gate]
        longest = max(effective_len(line) for line in gates)
        if slices and effective_len(gates[0]) == longest:
            last_slice = slices[-1]
            divider = len(gates[0]) - gates[0].index(last_slice)
            # Leave room for the label of the previous slice
            label_width = len(last_slice.split("\n")[-1])
            for _ in range(label_width // (10 * divider) + 1):
                gates[0].append("1")
        if not gates[0]:
            gates[0].append("1")
            for qubit in range(1, 10):
                self.circuit_lock.append((qubit, 0))

    def _prepare_for_ctrl(self, low: int, high: int) -> None:
        gates = self.circuit_gates
        add_lines(gates, [low, high])
        flatten_lines(gates, [low, high])
        for qubit in range(low + 1, high):
            release_lock(gates, self.circuit_lock, qubit)
            if effective_len(gates[qubit]) > effective_len(gates[low]):
                flatten_lines(gates, [low, qubit])
        flatten_lines(gates, [low, high])
        for qubit in range(low + 1, high):
            self.circuit_lock.append((qubit, effective_len(gates[low])))

    def _span(self, qubits: Sequence[int], op: Operation) -> List[int]:
        if not qubits:
            raise InvalidOperationError(f"Operations with no qubit in the input: {op!r}")
        span = list(range(min(qubits), max(qubits) + 1))
        add_lines(self.circuit_gates, span)
        flatten_lines(self.circuit_gates, span)
        return span

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def add_gate(self, op: Operation) -> None:
        """
        Adds an operation to the layout.

        Raises:
            OperationNotSupportedError: The operation has no representation
            InvalidOperationError: The operation content cannot be drawn
        """
        used_qubits = self._used_qubits(op.involved_qubits())
        if used_qubits:
            add_lines(self.circuit_gates, used_qubits)
            flatten_lines(self.circuit_gates, used_qubits)
            for qubit in used_qubits:
                release_lock(self.circuit_gates, self.circuit_lock, qubit)

        name = op.hqslang
        if name in SINGLE_QUBIT_GATES:
            add_lines(self.circuit_gates, [op["qubit"]])
            self.circuit_gates[op["qubit"]].append(SINGLE_QUBIT_GATES[name](op))
        elif name in CONTROLLED_GATES:
            self._add_controlled(op, CONTROLLED_GATES[name](op))
        elif name in DOUBLY_CONTROLLED_GATES:
            self._add_doubly_controlled(op, DOUBLY_CONTROLLED_GATES[name](op))
        elif name in SWAP_GATES:
            self._add_swap(op, SWAP_GATES[name])
        elif name in TWO_QUBIT_BOXES:
            self._add_two_qubit_box(op, *TWO_QUBIT_BOXES[name])
        elif name in MULTI_QUBIT_BOXES:
            self._add_multi_qubit_box(op, *MULTI_QUBIT_BOXES[name])
        elif name in SLICES:
            self._add_slice(SLICES[name](op))
        elif name in BOSONIC_GATES:
            self._add_bosonic(op["mode"], BOSONIC_GATES[name](op))
        elif name in QUBIT_MODE_GATES:
            qubit_cell, mode_cell = QUBIT_MODE_GATES[name]
            self._add_qubit_mode(op, qubit_cell(op), mode_cell(op))
        elif name == "BeamSplitter":
            self._add_beam_splitter(op)
        elif name == "CZQubitResonator":
            self._add_cz_qubit_resonator(op)
        elif name == "MeasureQubit":
            self._add_measurement(op["qubit"], op["readout"], op["readout_index"])
        elif name in ("PragmaConditional", "PragmaLoop", "PragmaControlledCircuit"):
            self._add_circuit_block(op)
        elif name in ("PragmaGetStateVector", "PragmaGetDensityMatrix",
                      "PragmaGetOccupationProbability", "PragmaGetPauliProduct"):
            self._add_readout_block(op)
        elif name == "PragmaRepeatedMeasurement":
            self._add_repeated_measurement(op)
        elif name == "PragmaAnnotatedOp":
            self._add_annotated(op)
        elif name == "DefinitionBit":
            self.classical_gates.append([f'lstick($ "{op["name"]} : " $)', "setwire(2)"])
        elif name == "InputBit":
            self._add_input_bit(op)
        elif name not in ALLOWED_OPERATIONS:
            raise OperationNotSupportedError(name)

    # ------------------------------------------------------------------
    # Qubit gates
    # ------------------------------------------------------------------

    def _add_controlled(self, op: Operation, target_cell: str) -> None:
        control, target = op["control"], op["target"]
        self._prepare_for_ctrl(min(control, target), max(control, target))
        self.circuit_gates[control].append(f"ctrl({target - control})")
        self.circuit_gates[target].append(target_cell)

    def _add_doubly_controlled(self, op: Operation, target_cell: str) -> None:
        control_0, control_1, target = op["control_0"], op["control_1"], op["target"]
        qubits = [control_0, target, control_1]
        add_lines(self.circuit_gates, qubits)
        flatten_lines(self.circuit_gates, qubits)
        self._prepare_for_ctrl(min(qubits), max(qubits))
        flatten_lines(self.circuit_gates, qubits)
        self.circuit_gates[control_0].append(f"ctrl({target - control_0})")
        self.circuit_gates[control_1].append(f"ctrl({target - control_1})")
        self.circuit_gates[target].append(target_cell)

    def _add_swap(self, op: Operation, label: Optional[str]) -> None:
        span = self._span([op["control"], op["target"]], op)
        low, high = span[0], span[-1]
        suffix = "" if label is None else f", label: {label}"
        self.circuit_gates[low].append(f"swap({high - low}{suffix})")
        self.circuit_gates[high].append("targX()")

    def _add_two_qubit_box(self, op: Operation, label: Callable[[Operation], str],
                           width: str, input_labels: Tuple[str, str]) -> None:
        span = self._span([op["control"], op["target"]], op)
        low, high = span[0], span[-1]
        inputs = (f'(qubit: {format_qubit_input(op["control"] - low, input_labels[0])}), '
                  f'(qubit: {format_qubit_input(op["target"] - low, input_labels[1])})')
        self.circuit_gates[low].append(
            f"mqgate($ {label(op)} $, n: {len(span)}, width: {width}, inputs: ({inputs}))")
        push_ones(self.circuit_gates, low, high)

    def _add_multi_qubit_box(self, op: Operation, label: Callable[[Operation], str],
                             width: str, gray: bool) -> None:
        qubits = list(op["qubits"])
        span = self._span(qubits, op)
        low, high = span[0], span[-1]
        inputs = ",".join(f"(qubit: {format_qubit_input(qubit - low, 'x')})" for qubit in qubits)
        fill = ", fill: gray" if gray else ""
        self.circuit_gates[low].append(
            f"mqgate($ {label(op)} $, n: {len(span)}, width: {width}{fill}, inputs: ({inputs}))")
        push_ones(self.circuit_gates, low, high)

    def _add_slice(self, cell: str) -> None:
        self._prepare_for_slice()
        flatten_lines(self.circuit_gates, range(len(self.circuit_gates)))
        self.circuit_gates[0].append(cell)

    # ------------------------------------------------------------------
    # Measurements and classical registers
    # ------------------------------------------------------------------

    def _add_measurement(self, qubit: int, readout: str, readout_index: int) -> None:
        gates, bosons, classical = self.circuit_gates, self.bosonic_gates, self.classical_gates
        add_lines(gates, [qubit])
        register = f'lstick($ "{readout} : " $)'
        index = next((i for i, line in enumerate(classical) if line and line[0] == register), None)
        if index is None:
            gates[qubit].append("meter()")
            return

        # The wire to the register crosses every line below the measured qubit
        flatten_multiple(gates, classical, [qubit], [index])
        for line in range(qubit, len(gates)):
            release_lock(gates, self.circuit_lock, line)
            if effective_len(gates[line]) > effective_len(gates[qubit]):
                flatten_lines(gates, [qubit, line])
        for mode in range(len(bosons)):
            release_lock(bosons, self.bosonic_lock, mode)
            if effective_len(bosons[mode]) > effective_len(gates[qubit]):
                flatten_multiple(gates, bosons, [qubit], [mode])
        for register_index in range(index + 1):
            release_lock(classical, self.classical_lock, register_index)
            if effective_len(classical[register_index]) > effective_len(classical[index]):
                flatten_lines(classical, [index, register_index])
        flatten_multiple(gates, classical, [qubit], [index])

        column = effective_len(classical[index])
        for line in range(qubit, len(gates) + 10):
            self.circuit_lock.append((line, column))
        for mode in range(len(bosons) + 10):
            self.bosonic_lock.append((mode, column))
        for register_index in range(index):
            self.classical_lock.append((register_index, len(classical[index])))

        gates[qubit].append(f"meter(target:{CLASSICAL_PLACEHOLDER}{index}-{qubit})")
        classical[index].append(f"ctrl(0, label: (content: $ {readout_index} $, pos: bottom))")

    def _add_input_bit(self, op: Operation) -> None:
        value = op["value"]
        if isinstance(value, bool):
            value = str(value).lower()
        register = f'lstick($ "{op["name"]} : " $)'
        for line in self.classical_gates:
            if line and line[0] == register:
                line.append(f'gate($ "InputBit:"\\ {op["index"]}=>#{value} $)')
                return
        logger.debug("InputBit on undefined register %s is not drawn", op["name"])

    def _add_repeated_measurement(self, op: Operation) -> None:
        self._prepare_for_slice()
        mapping = op.get("qubit_mapping")
        if mapping is None:
            used_qubits = list(range(len(self.circuit_gates)))
        else:
            used_qubits = sorted(mapping)
        span = self._span(used_qubits, op)
        self.circuit_gates[span[0]].append(
            f'gategroup({len(span)}, 1, label: "Repeat {op["number_measurements"]} times",  '
            f'{_GROUP_STROKE})')
        for qubit in used_qubits:
            readout_index = qubit if mapping is None else mapping[qubit]
            self._add_measurement(qubit, op["readout"], readout_index)
        flatten_lines(self.circuit_gates, span)

    # ------------------------------------------------------------------
    # Blocks around nested circuits
    # ------------------------------------------------------------------

    def _add_gate_group(self, span: List[int], label: str, circuit: Iterable[Operation]) -> None:
        gates = self.circuit_gates
        low = span[0]
        gates[low].append(
            f'gategroup({len(span)}, replace_by_len, label: "{label}",  {_GROUP_STROKE})')
        old_len = [len(line) for line in gates]
        for operation in circuit:
            self.add_gate(operation)
        group_len = max(len(gates[qubit]) - old_len[qubit] for qubit in span)
        gates[low][old_len[low] - 1] = gates[low][old_len[low] - 1].replace(
            "replace_by_len", str(group_len))
        flatten_lines(gates, span)

    def _add_circuit_block(self, op: Operation) -> None:
        circuit: Circuit = op["circuit"]
        if circuit.is_empty():
            return
        self._prepare_for_slice()
        used_qubits = self._used_qubits(op.involved_qubits())
        if op.hqslang == "PragmaControlledCircuit":
            span = self._span(used_qubits, op)
            label = f'ControlledCircuit by qubit: {op["controlling_qubit"]}'
        else:
            low = min(used_qubits, default=0)
            high = max(used_qubits, default=0)
            span = list(range(low, high + 1))
            add_lines(self.circuit_gates, span)
            flatten_lines(self.circuit_gates, span)
            if op.hqslang == "PragmaConditional":
                label = f'Conditional: {op["condition_register"]}[{op["condition_index"]}]'
            else:
                label = f'Loop: {_loop_repetitions(op["repetitions"])} times'
        self._add_gate_group(span, label, circuit)

    def _add_readout_block(self, op: Operation) -> None:
        self._prepare_for_slice()
        if op.hqslang == "PragmaGetPauliProduct":
            circuit = Circuit(op["circuit"])
            for qubit, pauli in sorted(op["qubit_paulis"].items()):
                if pauli not in _PAULI_OPERATIONS:
                    raise InvalidOperationError(
                        f"Invalid Pauli index {pauli} for qubit {qubit} in {op!r}")
                circuit.add(_PAULI_OPERATIONS[pauli], qubit=qubit)
        elif op.get("circuit") is not None:
            circuit = op["circuit"]
        else:
            circuit = Circuit(
                Operation("Identity", {"qubit": qubit})
                for qubit in range(len(self.circuit_gates)))
        used_qubits = self._used_qubits(circuit.involved_qubits())
        if not used_qubits:
            raise InvalidOperationError(f"Operations with no qubit in the input: {op!r}")
        if circuit.is_empty():
            return
        span = self._span(used_qubits, op)
        label = f'{op.hqslang[len("Pragma"):]}: {op["readout"]}'
        self._add_gate_group(span, label, circuit)

    def _add_annotated(self, op: Operation) -> None:
        self._prepare_for_slice()
        span = self._span(self._used_qubits(op.involved_qubits()), op)
        self.circuit_gates[span[0]].append(
            f'gategroup({len(span)}, 1, label: "{op["annotation"]}",  {_GROUP_STROKE})')
        self.add_gate(op["operation"])
        flatten_lines(self.circuit_gates, span)

    # ------------------------------------------------------------------
    # Bosonic modes
    # ------------------------------------------------------------------

    def _add_bosonic(self, mode: int, cell: str) -> None:
        add_lines(self.bosonic_gates, [mode])
        release_lock(self.bosonic_gates, self.bosonic_lock, mode)
        self.bosonic_gates[mode].append(cell)

    def _add_beam_splitter(self, op: Operation) -> None:
        bosons = self.bosonic_gates
        mode_0, mode_1 = op["mode_0"], op["mode_1"]
        low, high = min(mode_0, mode_1), max(mode_0, mode_1)
        modes = list(range(low, high + 1))
        add_lines(bosons, modes)
        for mode in modes:
            release_lock(bosons, self.bosonic_lock, mode)
        flatten_lines(bosons, modes)
        inputs = (f"(qubit: {format_qubit_input(mode_0 - low, 'x')}), "
                  f"(qubit: {format_qubit_input(mode_1 - low, 'x')})")
        bosons[low].append(
            f'mqgate($ "BeamSplitter"\\ ({fc(op["theta"])},{fc(op["phi"])}) $, '
            f"n: {len(modes)}, width: 9em, inputs: ({inputs}))")
        push_ones(bosons, low, high)

    def _align_qubit_and_mode(self, qubit: int, mode: int) -> None:
        add_lines(self.bosonic_gates, [mode])
        add_lines(self.circuit_gates, [qubit])
        flatten_multiple(self.circuit_gates, self.bosonic_gates, [qubit], [mode])
        release_lock(self.bosonic_gates, self.bosonic_lock, mode)
        flatten_multiple(self.circuit_gates, self.bosonic_gates, [qubit], [mode])

    def _lock_qubit_to_mode(self, qubit: int, mode: int) -> None:
        column = effective_len(self.circuit_gates[qubit])
        for line in range(qubit + 1, len(self.circuit_gates) + 10):
            self.circuit_lock.append((line, column))
        mode_column = effective_len(self.bosonic_gates[mode])
        for other in range(mode):
            self.bosonic_lock.append((other, mode_column))

    def _add_qubit_mode(self, op: Operation, qubit_cell: str, mode_cell: str) -> None:
        qubit, mode = op["qubit"], op["mode"]
        self._align_qubit_and_mode(qubit, mode)
        self._lock_qubit_to_mode(qubit, mode)
        self.circuit_gates[qubit].append(f"{qubit_cell}{BOSON_PLACEHOLDER}{mode}-{qubit})")
        self.bosonic_gates[mode].append(mode_cell)

    def _add_cz_qubit_resonator(self, op: Operation) -> None:
        gates, bosons = self.circuit_gates, self.bosonic_gates
        qubit, mode = op["qubit"], op["mode"]
        self._align_qubit_and_mode(qubit, mode)
        for line in range(qubit + 1, len(gates)):
            if effective_len(gates[line]) > effective_len(gates[qubit]):
                flatten_lines(gates, [qubit, line])
        for other in range(mode):
            if effective_len(bosons[other]) > effective_len(bosons[mode]):
                flatten_lines(bosons, [mode, other])
        self._lock_qubit_to_mode(qubit, mode)
        gates[qubit].append(f"ctrl({BOSON_PLACEHOLDER}{mode}-{qubit})")
        bosons[mode].append("gate($ Z $)")
