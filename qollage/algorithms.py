"""
Qollage Algorithms - circuit simplification passes
"""

import logging
from typing import Any, Dict, Optional, Tuple

from .core import ALL, Circuit, Operation, convert_into_circuit

logger = logging.getLogger(__name__)

# Two-qubit gates that are their own inverse
UNITARY_GATES = ("CNOT", "SWAP", "ControlledPauliZ")


def _flush(pending: Dict[Tuple[int, int], Optional[Operation]], qubits, output: Circuit) -> None:
    """Write out the pending gates touching `qubits` (every pending gate for ALL)."""
    for key, operation in pending.items():
        if qubits == ALL or key[0] in qubits or key[1] in qubits:
            if operation is not None:
                output.add_operation(operation)
            pending[key] = None


def _remove_identities_once(circuit: Circuit) -> Circuit:
    pending: Dict[Tuple[int, int], Optional[Operation]] = {}
    output = Circuit()
    for operation in circuit:
        if operation.hqslang in UNITARY_GATES:
            key = (operation["control"], operation["target"])
            previous = pending.get(key)
            if previous is not None and previous.hqslang == operation.hqslang:
                pending[key] = None
                continue
            _flush(pending, set(key), output)
            pending[key] = operation
        else:
            _flush(pending, operation.involved_qubits(), output)
            output.add_operation(operation)
    for operation in pending.values():
        if operation is not None:
            output.add_operation(operation)
    return output


def remove_two_qubit_gates_identities(circuit: Any) -> Circuit:
    """
    Remove pairs of identical self-inverse two-qubit gates that cancel.

    Two CNOT, SWAP or ControlledPauliZ gates on the same (control, target)
    pair cancel when no other operation touches either qubit in between.
    The pass is repeated until the circuit no longer changes.

    Args:
        circuit: Circuit, serialized circuit or qoqo circuit

    Returns:
        Circuit: The simplified circuit

    Raises:
        CircuitConversionError: The input cannot be converted into a Circuit
    """
    current = convert_into_circuit(circuit)
    while True:
        simplified = _remove_identities_once(current)
        if len(simplified) == len(current):
            return simplified
        logger.debug("Identity removal: %d -> %d operations", len(current), len(simplified))
        current = simplified
