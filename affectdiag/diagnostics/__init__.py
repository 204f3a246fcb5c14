"""
affectdiag Expression Diagnostics

    witness.py      - WitnessStateFinder (annealing search for a satisfying state)
    clauses.py      - NonAxisClauseExtractor (threshold clauses from prerequisites)
    feasibility.py  - FeasibilityAnalyzer (three-tier clause classification)
    monte_carlo.py  - MonteCarloSimulator (trigger rates + threshold sensitivity)
"""

from .witness import WitnessStateFinder, clause_fitness
from .clauses import NonAxisClauseExtractor
from .feasibility import FeasibilityAnalyzer
from .monte_carlo import MonteCarloSimulator, SimulationResult, wilson_interval

__all__ = [
    'WitnessStateFinder',
    'clause_fitness',
    'NonAxisClauseExtractor',
    'FeasibilityAnalyzer',
    'MonteCarloSimulator',
    'SimulationResult',
    'wilson_interval',
]
