"""
Prerequisite Logic
==================

Tagged AST for the JSON-Logic prerequisite format, with an explicit
evaluator.

Supported forms:
    {'var': 'emotions.joy'}                         Var
    0.5, True, 'x'                                   Const
    {'-': [a, b]}, {'+': [...]}, {'*': ...}, {'/': ...}, {'min': ...}, {'max': ...}
    {'>=': [a, b]}, '>', '<=', '<', '==', '!='      Compare
    {'<': [a, b, c]}                                 between, as And of two Compares
    {'and': [...]}, {'or': [...]}, {'!': x}          boolean combinators

A missing variable evaluates to None; any comparison touching None is False.
"""

import numbers
from dataclasses import dataclass, replace
from typing import Any, Iterator, Mapping, Optional, Tuple, Union

from affectdiag.validation.errors import LogicParseError


COMPARE_OPS = ('>=', '>', '<=', '<', '==', '!=')
ARITH_OPS = ('+', '-', '*', '/', 'min', 'max')
NEGATION_OPS = ('!', 'not')

FLIPPED_OPERATOR = {
    '>=': '<=',
    '>': '<',
    '<=': '>=',
    '<': '>',
    '==': '==',
    '!=': '!=',
}


@dataclass(frozen=True)
class Var:
    path: str
    default: Any = None


@dataclass(frozen=True)
class Const:
    value: Any


@dataclass(frozen=True)
class Arith:
    op: str
    operands: Tuple['Node', ...]


@dataclass(frozen=True)
class Compare:
    op: str
    left: 'Node'
    right: 'Node'


@dataclass(frozen=True)
class And:
    children: Tuple['Node', ...]


@dataclass(frozen=True)
class Or:
    children: Tuple['Node', ...]


@dataclass(frozen=True)
class Not:
    child: 'Node'


Node = Union[Var, Const, Arith, Compare, And, Or, Not]


# =============================================================================
# PARSING
# =============================================================================

def parse_logic(obj: Any) -> Node:
    """
    Parse a JSON-Logic tree into AST nodes.

    Raises:
        LogicParseError: Unknown operator or malformed arguments
    """
    if isinstance(obj, Mapping):
        if len(obj) != 1:
            raise LogicParseError(obj, "expected exactly one operator key")
        op, args = next(iter(obj.items()))
        return _parse_operator(op, args, obj)

    if isinstance(obj, (list, tuple)):
        raise LogicParseError(obj, "bare list is not a logic node")

    return Const(obj)


def _as_args(args: Any) -> Tuple[Any, ...]:
    if isinstance(args, (list, tuple)):
        return tuple(args)
    return (args,)


def _parse_operator(op: str, args: Any, fragment: Any) -> Node:
    if op == 'var':
        parts = _as_args(args)
        if not parts or not isinstance(parts[0], str):
            raise LogicParseError(fragment, "var requires a string path")
        default = parts[1] if len(parts) > 1 else None
        return Var(parts[0], default)

    if op in COMPARE_OPS or op in ('===', '!=='):
        op = {'===': '==', '!==': '!='}.get(op, op)
        operands = tuple(parse_logic(a) for a in _as_args(args))
        if len(operands) == 2:
            return Compare(op, operands[0], operands[1])
        if len(operands) == 3 and op in ('<', '<='):
            low, mid, high = operands
            return And((Compare(op, low, mid), Compare(op, mid, high)))
        raise LogicParseError(fragment, f"'{op}' takes 2 operands, got {len(operands)}")

    if op in ARITH_OPS:
        operands = tuple(parse_logic(a) for a in _as_args(args))
        if not operands:
            raise LogicParseError(fragment, f"'{op}' needs at least one operand")
        return Arith(op, operands)

    if op == 'and':
        return And(tuple(parse_logic(a) for a in _as_args(args)))

    if op == 'or':
        return Or(tuple(parse_logic(a) for a in _as_args(args)))

    if op in NEGATION_OPS:
        operands = _as_args(args)
        if len(operands) != 1:
            raise LogicParseError(fragment, "negation takes exactly one operand")
        return Not(parse_logic(operands[0]))

    raise LogicParseError(fragment, f"unknown operator '{op}'")


# =============================================================================
# EVALUATION
# =============================================================================

def resolve_path(context: Mapping[str, Any], path: str) -> Any:
    """Dotted lookup through nested mappings; None when any step is missing."""
    current: Any = context
    for part in path.split('.'):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _arith(op: str, values) -> Optional[float]:
    if any(v is None or not _is_number(v) for v in values):
        return None
    if op == '+':
        return float(sum(values))
    if op == '*':
        result = 1.0
        for v in values:
            result *= v
        return result
    if op == 'min':
        return float(min(values))
    if op == 'max':
        return float(max(values))
    if op == '-':
        if len(values) == 1:
            return -float(values[0])
        return float(values[0] - sum(values[1:]))
    if op == '/':
        if len(values) != 2 or values[1] == 0:
            return None
        return float(values[0] / values[1])
    raise LogicParseError(op, "unknown arithmetic operator")


def compare_values(op: str, left: Any, right: Any) -> bool:
    """Apply a comparison operator; None on either side is False."""
    if left is None or right is None:
        return False
    if op == '==':
        return left == right
    if op == '!=':
        return left != right
    try:
        if op == '>=':
            return left >= right
        if op == '>':
            return left > right
        if op == '<=':
            return left <= right
        if op == '<':
            return left < right
    except TypeError:
        return False
    raise LogicParseError(op, "unknown comparison operator")


def truthy(value: Any) -> bool:
    if value is None:
        return False
    return bool(value)


def evaluate(node: Node, context: Mapping[str, Any]) -> Any:
    """Evaluate an AST node against a nested context mapping."""
    if isinstance(node, Const):
        return node.value

    if isinstance(node, Var):
        value = resolve_path(context, node.path)
        return node.default if value is None else value

    if isinstance(node, Arith):
        return _arith(node.op, [evaluate(o, context) for o in node.operands])

    if isinstance(node, Compare):
        return compare_values(
            node.op, evaluate(node.left, context), evaluate(node.right, context)
        )

    if isinstance(node, And):
        return all(truthy(evaluate(c, context)) for c in node.children)

    if isinstance(node, Or):
        return any(truthy(evaluate(c, context)) for c in node.children)

    if isinstance(node, Not):
        return not truthy(evaluate(node.child, context))

    raise LogicParseError(node, "unknown node type")


def evaluate_logic(logic: Union[Node, Any], context: Mapping[str, Any]) -> bool:
    """Parse (if needed) and evaluate to a boolean."""
    node = logic if isinstance(logic, (Var, Const, Arith, Compare, And, Or, Not)) else parse_logic(logic)
    return truthy(evaluate(node, context))


# =============================================================================
# INSPECTION
# =============================================================================

def describe(node: Node) -> str:
    """Human-readable rendering, e.g. 'emotions.joy >= 0.5'."""
    if isinstance(node, Const):
        return repr(node.value) if isinstance(node.value, str) else str(node.value)
    if isinstance(node, Var):
        return node.path
    if isinstance(node, Arith):
        if node.op in ('min', 'max'):
            return f"{node.op}({', '.join(describe(o) for o in node.operands)})"
        return "(" + f" {node.op} ".join(describe(o) for o in node.operands) + ")"
    if isinstance(node, Compare):
        return f"{describe(node.left)} {node.op} {describe(node.right)}"
    if isinstance(node, And):
        return "(" + " AND ".join(describe(c) for c in node.children) + ")"
    if isinstance(node, Or):
        return "(" + " OR ".join(describe(c) for c in node.children) + ")"
    if isinstance(node, Not):
        return f"NOT {describe(node.child)}"
    return str(node)


def iter_comparisons(node: Node) -> Iterator[Compare]:
    """Yield every Compare leaf, depth-first."""
    if isinstance(node, Compare):
        yield node
    elif isinstance(node, (And, Or)):
        for child in node.children:
            yield from iter_comparisons(child)
    elif isinstance(node, Not):
        yield from iter_comparisons(node.child)


def normalize_comparison(node: Compare) -> Optional[Tuple[Node, str, float]]:
    """
    Put a comparison in (expression, operator, numeric threshold) form.

    A constant on the left flips the operator. Returns None when neither
    side is a numeric constant.
    """
    if isinstance(node.right, Const) and _is_number(node.right.value):
        return node.left, node.op, float(node.right.value)
    if isinstance(node.left, Const) and _is_number(node.left.value):
        return node.right, FLIPPED_OPERATOR[node.op], float(node.left.value)
    return None


def primary_path(node: Node) -> Optional[str]:
    """First variable path referenced by an expression node."""
    if isinstance(node, Var):
        return node.path
    if isinstance(node, Arith):
        for operand in node.operands:
            path = primary_path(operand)
            if path is not None:
                return path
    return None


def replace_threshold(
    node: Node,
    path: str,
    new_threshold: float,
    operator: Optional[str] = None,
) -> Node:
    """
    Copy of the tree with thresholds replaced in comparisons over `path`.

    When `operator` is given, only comparisons using it (after flipping a
    left-hand constant) are touched. The input tree is never modified.
    """
    if isinstance(node, Compare):
        normalized = normalize_comparison(node)
        if normalized is None:
            return node
        expr, op, _ = normalized
        if primary_path(expr) != path or (operator is not None and op != operator):
            return node
        if isinstance(node.right, Const) and expr is node.left:
            return replace(node, right=Const(new_threshold))
        return replace(node, left=Const(new_threshold))
    if isinstance(node, And):
        return And(tuple(replace_threshold(c, path, new_threshold, operator) for c in node.children))
    if isinstance(node, Or):
        return Or(tuple(replace_threshold(c, path, new_threshold, operator) for c in node.children))
    if isinstance(node, Not):
        return Not(replace_threshold(node.child, path, new_threshold, operator))
    return node
