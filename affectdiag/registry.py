"""
Definition Registry - supplies prototypes and expressions to the diagnostics.

The registry provides:
1. Lookup of prototypes by id or by family ('emotion', 'sexual')
2. Lookup of expressions by id
3. Loading of definitions from a YAML file

Any object implementing PrototypeRegistry can be passed to the finders
and analyzers; InMemoryRegistry is the bundled implementation.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import yaml

from affectdiag.models import Expression, Prototype

logger = logging.getLogger(__name__)


class PrototypeRegistry(ABC):
    """Read-only source of prototype and expression definitions."""

    @abstractmethod
    def get_prototype(self, prototype_id: str) -> Prototype:
        pass

    @abstractmethod
    def get_prototypes_by_type(self, prototype_type: str) -> List[Prototype]:
        pass

    @abstractmethod
    def get_all_prototypes(self) -> List[Prototype]:
        pass

    @abstractmethod
    def get_expression(self, expression_id: str) -> Expression:
        pass


class InMemoryRegistry(PrototypeRegistry):
    """
    Registry backed by plain dicts.

    Definitions are stored in insertion order; lookups of unknown ids raise
    KeyError listing what is available.
    """

    def __init__(
        self,
        prototypes: Optional[Iterable[Union[Prototype, Mapping[str, Any]]]] = None,
        expressions: Optional[Iterable[Union[Expression, Mapping[str, Any]]]] = None,
    ):
        self._prototypes: Dict[str, Prototype] = {}
        self._expressions: Dict[str, Expression] = {}

        for index, proto in enumerate(prototypes or []):
            self.add_prototype(proto, index)
        for expr in expressions or []:
            self.add_expression(expr)

    def add_prototype(self, prototype: Union[Prototype, Mapping[str, Any]], index: Optional[int] = None) -> Prototype:
        if not isinstance(prototype, Prototype):
            prototype = Prototype.from_dict(prototype, index)
        if prototype.id in self._prototypes:
            logger.warning(f"Replacing duplicate prototype '{prototype.id}'")
        self._prototypes[prototype.id] = prototype
        return prototype

    def add_expression(self, expression: Union[Expression, Mapping[str, Any]]) -> Expression:
        if not isinstance(expression, Expression):
            expression = Expression.from_dict(expression)
        self._expressions[expression.id] = expression
        return expression

    def list_prototypes(self) -> List[str]:
        """All prototype ids, sorted."""
        return sorted(self._prototypes.keys())

    def get_prototype(self, prototype_id: str) -> Prototype:
        if prototype_id not in self._prototypes:
            available = ", ".join(self.list_prototypes())
            raise KeyError(f"Unknown prototype: '{prototype_id}'. Available: {available}")
        return self._prototypes[prototype_id]

    def get_prototypes_by_type(self, prototype_type: str) -> List[Prototype]:
        return [p for p in self._prototypes.values() if p.type == prototype_type]

    def get_all_prototypes(self) -> List[Prototype]:
        return list(self._prototypes.values())

    def get_expression(self, expression_id: str) -> Expression:
        if expression_id not in self._expressions:
            available = ", ".join(sorted(self._expressions.keys()))
            raise KeyError(f"Unknown expression: '{expression_id}'. Available: {available}")
        return self._expressions[expression_id]


def load_registry(path: Union[str, Path]) -> InMemoryRegistry:
    """
    Load definitions from a YAML file.

    Expected layout:
        prototypes:
          - id: joy
            type: emotion
            weights: {valence: 1.0, arousal: 0.5}
            gates: ['valence >= 0.2']
        expressions:
          - id: elated
            prerequisites:
              - logic: {'>=': [{var: emotions.joy}, 0.6]}
    """
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    registry = InMemoryRegistry(
        prototypes=raw.get('prototypes', []),
        expressions=raw.get('expressions', []),
    )
    logger.info(
        f"Loaded {len(registry.get_all_prototypes())} prototypes from {path}"
    )
    return registry
