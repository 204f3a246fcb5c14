"""
Tests for the JSON-Logic parser and evaluator.
"""

import pytest

from affectdiag.core.logic import (
    And,
    Compare,
    Const,
    Var,
    describe,
    evaluate_logic,
    iter_comparisons,
    normalize_comparison,
    parse_logic,
    replace_threshold,
)
from affectdiag.validation.errors import LogicParseError


CONTEXT = {
    'emotions': {'joy': 0.7, 'fear': 0.1},
    'previousEmotions': {'joy': 0.4},
    'moodAxes': {'valence': 55},
}


class TestParse:

    def test_comparison(self):
        node = parse_logic({'>=': [{'var': 'emotions.joy'}, 0.5]})
        assert node == Compare('>=', Var('emotions.joy'), Const(0.5))

    def test_strict_equality_alias(self):
        """'===' parses as '=='."""
        node = parse_logic({'===': [{'var': 'moodAxes.valence'}, 55]})
        assert node.op == '=='

    def test_three_argument_between(self):
        """{'<=': [a, x, b]} becomes a <= x AND x <= b."""
        node = parse_logic({'<=': [0.2, {'var': 'emotions.joy'}, 0.9]})
        assert isinstance(node, And)
        assert len(node.children) == 2

    def test_unknown_operator_raises(self):
        with pytest.raises(LogicParseError, match="unknown operator"):
            parse_logic({'frobnicate': [1, 2]})

    def test_multi_key_mapping_raises(self):
        with pytest.raises(LogicParseError):
            parse_logic({'>=': [1, 0], '<=': [1, 2]})


class TestEvaluate:

    def test_and_or_not(self):
        logic = {'and': [
            {'>=': [{'var': 'emotions.joy'}, 0.5]},
            {'or': [{'<': [{'var': 'emotions.fear'}, 0.2]}, {'>': [{'var': 'moodAxes.valence'}, 90]}]},
            {'!': [{'>': [{'var': 'emotions.fear'}, 0.5]}]},
        ]}
        assert evaluate_logic(logic, CONTEXT) is True

    def test_delta_arithmetic(self):
        """Current minus previous supports delta clauses."""
        logic = {'>=': [{'-': [{'var': 'emotions.joy'}, {'var': 'previousEmotions.joy'}]}, 0.25]}
        assert evaluate_logic(logic, CONTEXT) is True

    def test_missing_variable_fails_comparison(self):
        """An unresolved path never satisfies a comparison."""
        assert evaluate_logic({'>=': [{'var': 'emotions.grief'}, 0.0]}, CONTEXT) is False
        assert evaluate_logic({'<': [{'var': 'emotions.grief'}, 1.0]}, CONTEXT) is False

    def test_min_max(self):
        logic = {'>=': [{'max': [{'var': 'emotions.joy'}, {'var': 'emotions.fear'}]}, 0.7]}
        assert evaluate_logic(logic, CONTEXT) is True


class TestInspection:

    def test_normalize_flips_left_constant(self):
        """0.5 <= x is reported as x >= 0.5."""
        node = parse_logic({'<=': [0.5, {'var': 'emotions.joy'}]})
        expr, op, threshold = normalize_comparison(node)
        assert expr == Var('emotions.joy')
        assert op == '>='
        assert threshold == 0.5

    def test_iter_comparisons_depth_first(self):
        node = parse_logic({'and': [{'>=': [{'var': 'a'}, 1]}, {'or': [{'<': [{'var': 'b'}, 2]}]}]})
        assert [describe(c) for c in iter_comparisons(node)] == ['a >= 1', 'b < 2']

    def test_replace_threshold_copies(self):
        """The original tree keeps its threshold."""
        node = parse_logic({'and': [{'>=': [{'var': 'emotions.joy'}, 0.5]}, {'>=': [{'var': 'emotions.fear'}, 0.5]}]})
        swapped = replace_threshold(node, 'emotions.joy', 0.9, '>=')

        assert evaluate_logic(node, {'emotions': {'joy': 0.7, 'fear': 0.6}}) is True
        assert evaluate_logic(swapped, {'emotions': {'joy': 0.7, 'fear': 0.6}}) is False
        assert describe(swapped.children[1]) == 'emotions.fear >= 0.5', "Other paths untouched"
