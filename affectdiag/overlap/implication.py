"""
Gate Implication
================

Deterministic comparison of two prototypes' gate regions.

Parsed gates are folded into one interval per axis; an axis with no gate
is unbounded. A implies B when, on every axis, A's interval lies inside
B's. An unsatisfiable side (empty interval on some axis) implies anything,
so such results are flagged as vacuous.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from affectdiag.core.gates import ParsedGate, ParsedGates


@dataclass
class Interval:
    """Closed/open interval on one normalized axis."""
    lower: float = -math.inf
    upper: float = math.inf
    lower_open: bool = False
    upper_open: bool = False

    @property
    def unsatisfiable(self) -> bool:
        if self.lower > self.upper:
            return True
        return self.lower == self.upper and (self.lower_open or self.upper_open)

    def tighten_lower(self, value: float, is_open: bool) -> None:
        if value > self.lower:
            self.lower, self.lower_open = value, is_open
        elif value == self.lower:
            self.lower_open = self.lower_open or is_open

    def tighten_upper(self, value: float, is_open: bool) -> None:
        if value < self.upper:
            self.upper, self.upper_open = value, is_open
        elif value == self.upper:
            self.upper_open = self.upper_open or is_open

    def is_subset_of(self, other: 'Interval') -> bool:
        if self.unsatisfiable:
            return True
        if other.unsatisfiable:
            return False

        if self.lower < other.lower:
            return False
        if self.lower == other.lower and other.lower_open and not self.lower_open:
            return False

        if self.upper > other.upper:
            return False
        if self.upper == other.upper and other.upper_open and not self.upper_open:
            return False
        return True

    def is_separated_from(self, other: 'Interval') -> bool:
        """Strictly apart; touching endpoints are not separated."""
        return self.upper < other.lower or other.upper < self.lower

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lower': self.lower,
            'upper': self.upper,
            'lower_open': self.lower_open,
            'upper_open': self.upper_open,
            'unsatisfiable': self.unsatisfiable,
        }


def build_intervals(gates: Any) -> Dict[str, Interval]:
    """Fold parsed gates (ParsedGates or list of ParsedGate) into per-axis intervals."""
    if isinstance(gates, ParsedGates):
        gates = gates.gates

    intervals: Dict[str, Interval] = {}
    for gate in gates or []:
        interval = intervals.setdefault(gate.axis, Interval())
        op, t = gate.operator, gate.threshold
        if op in ('>=', '>'):
            interval.tighten_lower(t, op == '>')
        elif op in ('<=', '<'):
            interval.tighten_upper(t, op == '<')
        elif op == '==':
            interval.tighten_lower(t, False)
            interval.tighten_upper(t, False)
    return intervals


@dataclass
class ImplicationResult:
    a_implies_b: bool
    b_implies_a: bool
    counter_example_axes: List[str] = field(default_factory=list)
    evidence: List[Dict[str, Any]] = field(default_factory=list)
    relation: str = 'overlapping'
    is_vacuous: bool = False


class GateImplicationEvaluator:
    """Per-axis interval implication between two gate sets."""

    def evaluate(
        self,
        intervals_a: Mapping[str, Interval],
        intervals_b: Mapping[str, Interval],
    ) -> ImplicationResult:
        """
        Args:
            intervals_a: axis -> Interval for prototype A
            intervals_b: axis -> Interval for prototype B

        Returns:
            ImplicationResult with relation equal / narrower / wider /
            disjoint / overlapping
        """
        a_empty = any(i.unsatisfiable for i in intervals_a.values())
        b_empty = any(i.unsatisfiable for i in intervals_b.values())

        axes = sorted(set(intervals_a) | set(intervals_b))
        evidence = []
        counter = []
        a_sub_b = True
        b_sub_a = True
        disjoint = False

        for axis in axes:
            ia = intervals_a.get(axis, Interval())
            ib = intervals_b.get(axis, Interval())
            ab = ia.is_subset_of(ib)
            ba = ib.is_subset_of(ia)
            separated = ia.is_separated_from(ib)

            a_sub_b = a_sub_b and ab
            b_sub_a = b_sub_a and ba
            disjoint = disjoint or separated
            if not ab:
                counter.append(axis)

            evidence.append({
                'axis': axis,
                'interval_a': ia.to_dict(),
                'interval_b': ib.to_dict(),
                'a_subset_b': ab,
                'b_subset_a': ba,
            })

        a_implies_b = a_empty or a_sub_b
        b_implies_a = b_empty or b_sub_a

        if a_implies_b and b_implies_a:
            relation = 'equal'
        elif a_implies_b:
            relation = 'narrower'
        elif b_implies_a:
            relation = 'wider'
        elif disjoint:
            relation = 'disjoint'
        else:
            relation = 'overlapping'

        return ImplicationResult(
            a_implies_b=a_implies_b,
            b_implies_a=b_implies_a,
            counter_example_axes=[] if a_empty else counter,
            evidence=evidence,
            relation=relation,
            is_vacuous=a_empty or b_empty,
        )
