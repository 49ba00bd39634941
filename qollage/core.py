"""
Qollage Core - Circuit records and library exceptions

Provides the thin circuit model the renderer walks over: an ordered list of
operations identified by their hqslang name, plus conversion from circuits
serialized by the qoqo toolkit.
"""

import json
import logging
from dataclasses import dataclass, field
from collections.abc import Iterable
from typing import Any, Dict, Iterator, List, Optional, Set, Union

import numpy as np

logger = logging.getLogger(__name__)

# Marker returned by involved_qubits() when an operation acts on every qubit
ALL = "All"

# ============================================================================
# PYTHON EXCEPTIONS
# ============================================================================

class QollageError(Exception):
    """Base exception for circuit drawing errors"""
    pass


class CircuitConversionError(QollageError, TypeError):
    """Raised when an object cannot be converted into a Circuit"""
    pass


class OperationNotSupportedError(QollageError, ValueError):
    """Raised when the backend has no representation for an operation"""

    def __init__(self, hqslang: str, backend: str = "TypstBackend"):
        self.hqslang = hqslang
        self.backend = backend
        super().__init__(f"Operation {hqslang} not supported by {backend}")


class InvalidOperationError(QollageError, ValueError):
    """Raised for operations whose content cannot be drawn"""
    pass


class InitializationModeError(QollageError, ValueError):
    """Raised for an unknown initialization mode"""
    pass


class FontDownloadError(QollageError, ConnectionError):
    """Raised when the equation font cannot be fetched"""
    pass


class TypstCompilationError(QollageError, ValueError):
    """Raised when the Typst compiler rejects the generated document"""
    pass


# ============================================================================
# OPERATIONS
# ============================================================================

# Fields holding a single qubit index
_QUBIT_FIELDS = ("qubit", "control", "target", "control_0", "control_1", "controlling_qubit")

# Operations acting on the whole register
_ALL_QUBIT_OPERATIONS = frozenset([
    "PragmaSetStateVector",
    "PragmaSetDensityMatrix",
    "PragmaRepeatGate",
    "PragmaChangeDevice",
])

_GET_OPERATIONS = frozenset([
    "PragmaGetStateVector",
    "PragmaGetDensityMatrix",
    "PragmaGetOccupationProbability",
])


@dataclass(eq=False)
class Operation:
    """
    Single circuit operation

    Args:
        hqslang: Operation name, e.g. "Hadamard" or "PragmaLoop"
        params: Operation fields as found in the qoqo serialization
    """
    hqslang: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.params[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.params.get(key, default)

    @property
    def is_pragma(self) -> bool:
        return self.hqslang.startswith("Pragma")

    @property
    def is_definition(self) -> bool:
        return self.hqslang.startswith("Definition")

    def involved_qubits(self) -> Union[Set[int], str]:
        """
        Qubits the operation acts on.

        Returns:
            Set of qubit indices, or ALL when the operation acts on every qubit
        """
        name = self.hqslang
        if name in _ALL_QUBIT_OPERATIONS:
            return ALL
        if name in _GET_OPERATIONS:
            circuit = self.get("circuit")
            return ALL if circuit is None else circuit.involved_qubits()
        if name == "PragmaRepeatedMeasurement":
            mapping = self.get("qubit_mapping")
            return ALL if mapping is None else set(mapping)
        if name == "PragmaAnnotatedOp":
            return self["operation"].involved_qubits()

        qubits: Set[int] = set()
        if name in ("PragmaConditional", "PragmaLoop", "PragmaControlledCircuit"):
            inner = self["circuit"].involved_qubits()
            if inner == ALL:
                return ALL
            qubits |= inner
        if name == "PragmaGetPauliProduct":
            inner = self["circuit"].involved_qubits()
            if inner == ALL:
                return ALL
            qubits |= inner
            qubits |= set(self["qubit_paulis"])
            return qubits

        for key in _QUBIT_FIELDS:
            if key in self.params:
                qubits.add(int(self.params[key]))
        qubits.update(int(q) for q in self.params.get("qubits", []))
        return qubits

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Operation):
            return NotImplemented
        if self.hqslang != other.hqslang or self.params.keys() != other.params.keys():
            return False
        return all(_values_equal(value, other.params[key]) for key, value in self.params.items())

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
        return f"{self.hqslang}({args})"


def _values_equal(left: Any, right: Any) -> bool:
    if isinstance(left, np.ndarray) or isinstance(right, np.ndarray):
        return np.array_equal(np.asarray(left), np.asarray(right))
    return bool(left == right)


# ============================================================================
# CIRCUIT
# ============================================================================

class Circuit:
    """
    Ordered collection of operations

    Definitions (DefinitionBit, DefinitionFloat, ...) are stored apart from
    the other operations and always come first when iterating.

    Example:
        >>> circuit = Circuit()
        >>> circuit.definition_bit("ro", 2, True)
        >>> circuit.hadamard(0).cnot(0, 1)
        >>> circuit.measure_qubit(0, "ro", 0).measure_qubit(1, "ro", 1)
    """

    def __init__(self, operations: Optional[Iterable[Operation]] = None):
        self.definitions: List[Operation] = []
        self.operations: List[Operation] = []
        for operation in operations or []:
            self.add_operation(operation)

    def add_operation(self, operation: Operation) -> 'Circuit':
        if not isinstance(operation, Operation):
            raise CircuitConversionError(f"Cannot add {type(operation).__name__} to a Circuit")
        if operation.is_definition:
            self.definitions.append(operation)
        else:
            self.operations.append(operation)
        return self

    def add(self, hqslang: str, **params) -> 'Circuit':
        """Append an operation built from its name and fields."""
        return self.add_operation(Operation(hqslang, params))

    def __iadd__(self, other: Union[Operation, 'Circuit']) -> 'Circuit':
        if isinstance(other, Circuit):
            for operation in list(other):
                self.add_operation(operation)
        else:
            self.add_operation(other)
        return self

    def __iter__(self) -> Iterator[Operation]:
        yield from self.definitions
        yield from self.operations

    def __len__(self) -> int:
        return len(self.definitions) + len(self.operations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Circuit):
            return NotImplemented
        return self.definitions == other.definitions and self.operations == other.operations

    def __repr__(self) -> str:
        return f"Circuit({len(self)} operations)"

    def is_empty(self) -> bool:
        return len(self) == 0

    def involved_qubits(self) -> Union[Set[int], str]:
        qubits: Set[int] = set()
        for operation in self:
            involved = operation.involved_qubits()
            if involved == ALL:
                return ALL
            qubits |= involved
        return qubits

    # ========================================================================
    # Builder helpers
    # ========================================================================

    def hadamard(self, qubit: int) -> 'Circuit':
        return self.add("Hadamard", qubit=qubit)

    def pauli_x(self, qubit: int) -> 'Circuit':
        return self.add("PauliX", qubit=qubit)

    def pauli_y(self, qubit: int) -> 'Circuit':
        return self.add("PauliY", qubit=qubit)

    def pauli_z(self, qubit: int) -> 'Circuit':
        return self.add("PauliZ", qubit=qubit)

    def s_gate(self, qubit: int) -> 'Circuit':
        return self.add("SGate", qubit=qubit)

    def t_gate(self, qubit: int) -> 'Circuit':
        return self.add("TGate", qubit=qubit)

    def rotate_x(self, qubit: int, theta: Union[float, str]) -> 'Circuit':
        return self.add("RotateX", qubit=qubit, theta=theta)

    def rotate_y(self, qubit: int, theta: Union[float, str]) -> 'Circuit':
        return self.add("RotateY", qubit=qubit, theta=theta)

    def rotate_z(self, qubit: int, theta: Union[float, str]) -> 'Circuit':
        return self.add("RotateZ", qubit=qubit, theta=theta)

    def cnot(self, control: int, target: int) -> 'Circuit':
        return self.add("CNOT", control=control, target=target)

    def controlled_pauli_z(self, control: int, target: int) -> 'Circuit':
        return self.add("ControlledPauliZ", control=control, target=target)

    def swap(self, control: int, target: int) -> 'Circuit':
        return self.add("SWAP", control=control, target=target)

    def toffoli(self, control_0: int, control_1: int, target: int) -> 'Circuit':
        return self.add("Toffoli", control_0=control_0, control_1=control_1, target=target)

    def measure_qubit(self, qubit: int, readout: str, readout_index: int) -> 'Circuit':
        return self.add("MeasureQubit", qubit=qubit, readout=readout, readout_index=readout_index)

    def definition_bit(self, name: str, length: int, is_output: bool = True) -> 'Circuit':
        return self.add("DefinitionBit", name=name, length=length, is_output=is_output)

    # ========================================================================
    # Serialization
    # ========================================================================

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> 'Circuit':
        """
        Read a circuit serialized by qoqo/roqoqo.

        Args:
            text: JSON document with "definitions" and "operations" lists

        Raises:
            CircuitConversionError: The document is not a serialized circuit
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as err:
            raise CircuitConversionError(f"Cannot parse circuit JSON: {err}") from err
        return _decode_circuit(data)

    def to_json(self) -> str:
        """Serialize in the layout read by from_json (and qoqo's Circuit.from_json)."""
        return json.dumps({
            "definitions": [_encode_operation(op) for op in self.definitions],
            "operations": [_encode_operation(op) for op in self.operations],
            "_roqoqo_version": {"major_version": 1, "minor_version": 0},
        })


def _decode_circuit(data: Any) -> Circuit:
    if not isinstance(data, dict) or "operations" not in data:
        raise CircuitConversionError("Serialized circuit needs an 'operations' list")
    circuit = Circuit()
    for entry in list(data.get("definitions", [])) + list(data["operations"]):
        circuit.add_operation(_decode_operation(entry))
    return circuit


def _decode_operation(entry: Any) -> Operation:
    if not isinstance(entry, dict) or len(entry) != 1:
        raise CircuitConversionError(f"Malformed serialized operation: {entry!r}")
    (hqslang, fields), = entry.items()
    params: Dict[str, Any] = {}
    for key, value in (fields or {}).items():
        params[key] = _decode_field(key, value)
    return Operation(hqslang, params)


_INT_KEYED_MAPS = ("qubit_mapping", "qubit_paulis", "reordering_dictionary")
_ARRAY_FIELDS = ("statevector", "density_matrix", "rates")


def _decode_field(key: str, value: Any) -> Any:
    if key == "circuit":
        return None if value is None else _decode_circuit(value)
    if key == "operation":
        return _decode_operation(value)
    if key in _INT_KEYED_MAPS and isinstance(value, dict):
        return {int(k): v for k, v in value.items()}
    if key in _ARRAY_FIELDS:
        return decode_array(value)
    return value


def decode_array(value: Any) -> np.ndarray:
    """
    Decode a serialized ndarray.

    Accepts plain (nested) lists as well as the {"v": 1, "dim": [...],
    "data": [...]} layout. Complex entries are [re, im] pairs.
    """
    if isinstance(value, dict) and "data" in value:
        dim = [int(d) for d in value.get("dim", [])]
        data = np.asarray(value["data"])
        if data.ndim == 2 and data.shape[1] == 2:
            data = data[:, 0] + 1j * data[:, 1]
        return data.reshape(dim) if dim else data
    return np.asarray(value)


def convert_into_circuit(obj: Any) -> Circuit:
    """
    Convert supported circuit representations into a Circuit.

    Accepts a Circuit, a JSON string/bytes, any object with a to_json()
    method (qoqo circuits) or an iterable of Operation.

    Raises:
        CircuitConversionError: Unsupported input
    """
    if isinstance(obj, Circuit):
        return obj
    if isinstance(obj, (str, bytes)):
        return Circuit.from_json(obj)
    to_json = getattr(obj, "to_json", None)
    if callable(to_json):
        logger.debug("Converting %s through its JSON serialization", type(obj).__name__)
        return Circuit.from_json(to_json())
    if isinstance(obj, Iterable):
        operations = list(obj)
        if all(isinstance(op, Operation) for op in operations):
            return Circuit(operations)
    raise CircuitConversionError(
        f"Cannot convert python object to Circuit: {type(obj).__name__}")


def _encode_operation(operation: Operation) -> Dict[str, Any]:
    return {operation.hqslang: {key: _encode_field(value) for key, value in operation.params.items()}}


def _encode_field(value: Any) -> Any:
    if isinstance(value, Circuit):
        return json.loads(value.to_json())
    if isinstance(value, Operation):
        return _encode_operation(value)
    if isinstance(value, np.ndarray):
        flat = value.ravel()
        if np.iscomplexobj(flat):
            data = [[float(entry.real), float(entry.imag)] for entry in flat]
        else:
            data = flat.tolist()
        return {"v": 1, "dim": list(value.shape), "data": data}
    if isinstance(value, dict):
        return {str(key): entry for key, entry in value.items()}
    return value
