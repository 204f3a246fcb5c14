"""
Gate Checking
=============

Prototype gates are short strings over normalized axes, e.g.
'valence >= 0.35' or 'affective_empathy >= 0.25'.

Two APIs:
- check_all_gates_pass(gates, context): raw context, parses and normalizes
- check_parsed(parsed, normalized_axes): pre-parsed gates over a
  pre-normalized context, for batch loops that reuse both

Unparseable gates are skipped with a warning and mark the prototype's
parse status as partial.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from affectdiag.config.thresholds import GATE_CHECK
from affectdiag.core.axes import AxisNormalizer
from affectdiag.models import GateParseInfo, ParseStatus

logger = logging.getLogger(__name__)


GATE_PATTERN = re.compile(r'^(\w+)\s*(>=|<=|>|<|==)\s*(-?\d*\.?\d+)$')


@dataclass(frozen=True)
class ParsedGate:
    """One gate in (axis, operator, threshold) form."""
    axis: str
    operator: str
    threshold: float
    source: str = ""


@dataclass
class ParsedGates:
    """Parsed gate list plus the parse record for its prototype."""
    gates: List[ParsedGate] = field(default_factory=list)
    parse_info: GateParseInfo = field(default_factory=GateParseInfo)


def parse_gate(gate: Any) -> Optional[ParsedGate]:
    """Parse one gate string; None when it does not match the gate grammar."""
    if not isinstance(gate, str):
        return None
    match = GATE_PATTERN.match(gate.strip())
    if match is None:
        return None
    axis, operator, threshold = match.groups()
    return ParsedGate(axis=axis, operator=operator, threshold=float(threshold), source=gate)


class GateChecker:
    """Evaluates prototype gates against normalized axis values."""

    def __init__(
        self,
        normalizer: Optional[AxisNormalizer] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        cfg = {**GATE_CHECK, **(config or {})}
        self.normalizer = normalizer or AxisNormalizer()
        self.tolerance = float(cfg['equality_tolerance'])

    def parse_gates(
        self,
        gates: Optional[Sequence[Any]],
        prototype_id: Optional[str] = None,
    ) -> ParsedGates:
        """
        Parse a prototype's gate list once for reuse.

        Args:
            gates: Gate strings (None treated as no gates)
            prototype_id: Used only in log messages

        Returns:
            ParsedGates with parse_info describing skipped gates
        """
        gates = list(gates or [])
        parsed: List[ParsedGate] = []
        unparsed: List[str] = []

        for gate in gates:
            result = parse_gate(gate)
            if result is None:
                logger.warning(
                    f"Skipping unparseable gate {gate!r}"
                    + (f" on prototype '{prototype_id}'" if prototype_id else "")
                )
                unparsed.append(str(gate))
            else:
                parsed.append(result)

        info = GateParseInfo(
            parse_status=ParseStatus.PARTIAL if unparsed else ParseStatus.COMPLETE,
            parsed_gate_count=len(parsed),
            total_gate_count=len(gates),
            unparsed_gates=unparsed,
        )
        return ParsedGates(gates=parsed, parse_info=info)

    def check_gate(self, gate: ParsedGate, normalized_axes: Mapping[str, float]) -> bool:
        """Evaluate one parsed gate; an unknown axis fails."""
        value = normalized_axes.get(gate.axis)
        if value is None:
            return False

        op = gate.operator
        if op == '>=':
            return value >= gate.threshold
        if op == '>':
            return value > gate.threshold
        if op == '<=':
            return value <= gate.threshold
        if op == '<':
            return value < gate.threshold
        if op == '==':
            return abs(value - gate.threshold) <= self.tolerance
        return False

    def check_parsed(
        self,
        parsed: Union[ParsedGates, Sequence[ParsedGate]],
        normalized_axes: Mapping[str, float],
    ) -> bool:
        """All pre-parsed gates pass on a pre-normalized context."""
        gates = parsed.gates if isinstance(parsed, ParsedGates) else parsed
        return all(self.check_gate(g, normalized_axes) for g in gates)

    def check_all_gates_pass(self, gates: Optional[Sequence[Any]], context: Any) -> bool:
        """All gates pass on a raw context (AffectContext or axis mapping)."""
        parsed = self.parse_gates(gates)
        return self.check_parsed(parsed, self.normalizer.normalize(context))
