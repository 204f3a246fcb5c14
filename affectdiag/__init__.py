"""
affectdiag - Expression Diagnostics Engine

Diagnostics for rule-based affective-state models: expressions (logical
prerequisites over mood / sexual / trait axes) and prototypes (gated,
weighted scoring rules).

Usage:
    import asyncio
    import affectdiag

    registry = affectdiag.load_registry('model.yaml')

    # Is this expression satisfiable at all?
    finder = affectdiag.WitnessStateFinder(registry)
    result = asyncio.run(finder.find_witness(registry.get_expression('grief_wave')))

    # How often does it fire?
    simulator = affectdiag.MonteCarloSimulator(registry)
    sim = asyncio.run(simulator.simulate(registry.get_expression('grief_wave'), seed=42))

    # Which emotion prototypes are redundant?
    analyzer = affectdiag.OverlapAnalyzer(registry)
    report = asyncio.run(analyzer.analyze('emotion'))
"""

__version__ = '0.1.0'

from .models import (
    AffectContext,
    Prototype,
    Expression,
    GateParseInfo,
    WitnessState,
    SearchResult,
    ClauseSpec,
    FeasibilityResult,
    PrototypeVector,
    CandidatePair,
    OverlapClassification,
    ClassificationResult,
    PrototypeType,
    ParseStatus,
    SignalKind,
    FeasibilityClass,
    OverlapType,
)
from .registry import PrototypeRegistry, InMemoryRegistry, load_registry
from .validation import (
    DiagnosticsError,
    InvalidPrototypeError,
    SearchCancelledError,
    LogicParseError,
    ConfigValidationError,
)
from .core import (
    AxisNormalizer,
    GateChecker,
    IntensityCalculator,
    RandomContextGenerator,
    PrototypeEmotionCalculator,
    build_evaluation_context,
)
from .diagnostics import (
    WitnessStateFinder,
    NonAxisClauseExtractor,
    FeasibilityAnalyzer,
    MonteCarloSimulator,
    SimulationResult,
)
from .overlap import (
    PrototypeVectorEvaluator,
    CandidatePairFilter,
    GateImplicationEvaluator,
    BehavioralOverlapEvaluator,
    OverlapClassifier,
    OverlapAnalyzer,
)
from .config import get_overlap_config, load_overlap_config, validate_overlap_config

__all__ = [
    '__version__',
    # Data model
    'AffectContext',
    'Prototype',
    'Expression',
    'GateParseInfo',
    'WitnessState',
    'SearchResult',
    'ClauseSpec',
    'FeasibilityResult',
    'PrototypeVector',
    'CandidatePair',
    'OverlapClassification',
    'ClassificationResult',
    'PrototypeType',
    'ParseStatus',
    'SignalKind',
    'FeasibilityClass',
    'OverlapType',
    # Registry
    'PrototypeRegistry',
    'InMemoryRegistry',
    'load_registry',
    # Errors
    'DiagnosticsError',
    'InvalidPrototypeError',
    'SearchCancelledError',
    'LogicParseError',
    'ConfigValidationError',
    # Core
    'AxisNormalizer',
    'GateChecker',
    'IntensityCalculator',
    'RandomContextGenerator',
    'PrototypeEmotionCalculator',
    'build_evaluation_context',
    # Diagnostics
    'WitnessStateFinder',
    'NonAxisClauseExtractor',
    'FeasibilityAnalyzer',
    'MonteCarloSimulator',
    'SimulationResult',
    # Overlap
    'PrototypeVectorEvaluator',
    'CandidatePairFilter',
    'GateImplicationEvaluator',
    'BehavioralOverlapEvaluator',
    'OverlapClassifier',
    'OverlapAnalyzer',
    # Config
    'get_overlap_config',
    'load_overlap_config',
    'validate_overlap_config',
]
