"""
Tests for prototype gate parsing and checking.
"""

from affectdiag.core.gates import GateChecker, parse_gate
from affectdiag.models import ParseStatus

from conftest import make_context


class TestParseGate:

    def test_basic(self):
        gate = parse_gate('valence >= 0.35')
        assert (gate.axis, gate.operator, gate.threshold) == ('valence', '>=', 0.35)

    def test_negative_threshold(self):
        assert parse_gate('threat<-0.2').threshold == -0.2

    def test_garbage_returns_none(self):
        assert parse_gate('valence is high') is None
        assert parse_gate(None) is None


class TestGateChecker:

    def test_all_gates_pass(self):
        checker = GateChecker()
        ctx = make_context(mood={'valence': 40, 'threat': 10})
        assert checker.check_all_gates_pass(['valence >= 0.35', 'threat <= 0.2'], ctx)
        assert not checker.check_all_gates_pass(['valence >= 0.5'], ctx)

    def test_no_gates_pass(self):
        """An empty gate list always passes."""
        assert GateChecker().check_all_gates_pass([], make_context())

    def test_unknown_axis_fails(self):
        assert not GateChecker().check_all_gates_pass(['nonexistent >= 0'], make_context())

    def test_equality_tolerance(self):
        ctx = make_context(mood={'valence': 50})
        assert GateChecker().check_all_gates_pass(['valence == 0.5'], ctx)

    def test_partial_parse_recorded(self):
        """Unparseable gates are skipped and the parse marked partial."""
        parsed = GateChecker().parse_gates(['valence >= 0.2', 'weird gate'], 'joy')
        info = parsed.parse_info
        assert info.parse_status == ParseStatus.PARTIAL
        assert info.parsed_gate_count == 1
        assert info.total_gate_count == 2
        assert info.unparsed_gates == ['weird gate']
        assert not info.is_complete
