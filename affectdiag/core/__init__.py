"""
affectdiag Core
===============

Numeric leaves shared by every diagnostic:

    axes.py            - AxisNormalizer (raw axes -> bounded scale)
    logic.py           - JSON-Logic tree parser and evaluator
    gates.py           - GateChecker for prototype gate strings
    intensity.py       - IntensityCalculator (L1-normalized scores)
    random_context.py  - RandomContextGenerator
    context.py         - evaluation-context builder + reference emotion calculator
    scheduling.py      - cooperative yield / cancellation
"""

from .axes import AxisNormalizer, clamp01
from .logic import evaluate_logic, parse_logic
from .gates import GateChecker, ParsedGate, ParsedGates, parse_gate
from .intensity import IntensityCalculator
from .random_context import RandomContextGenerator
from .context import PrototypeEmotionCalculator, build_evaluation_context
from .scheduling import cooperative_yield

__all__ = [
    'AxisNormalizer',
    'clamp01',
    'evaluate_logic',
    'parse_logic',
    'GateChecker',
    'ParsedGate',
    'ParsedGates',
    'parse_gate',
    'IntensityCalculator',
    'RandomContextGenerator',
    'PrototypeEmotionCalculator',
    'build_evaluation_context',
    'cooperative_yield',
]
