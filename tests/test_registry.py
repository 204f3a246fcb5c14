"""
Tests for the prototype registry.
"""

import pytest
import yaml

from affectdiag.models import Prototype
from affectdiag.registry import InMemoryRegistry, load_registry
from affectdiag.validation.errors import InvalidPrototypeError


class TestInMemoryRegistry:

    def test_lookup(self, registry):
        assert registry.get_prototype('joy').weights['valence'] == 1.0
        assert [p.id for p in registry.get_prototypes_by_type('sexual')] == ['desire']
        assert len(registry.get_all_prototypes()) == 4
        assert registry.get_expression('elated').prerequisites

    def test_unknown_lists_available(self, registry):
        with pytest.raises(KeyError, match="Available: contentment, desire, fear, joy"):
            registry.get_prototype('grief')

    def test_missing_id(self):
        with pytest.raises(InvalidPrototypeError, match="index 0"):
            InMemoryRegistry(prototypes=[{'weights': {'valence': 1}}])

    def test_duplicate_replaces(self):
        registry = InMemoryRegistry(prototypes=[Prototype('a', {'valence': 1}), Prototype('a', {'valence': 2})])
        assert registry.get_prototype('a').weights == {'valence': 2}


class TestLoadRegistry:

    def test_yaml(self, tmp_path):
        path = tmp_path / 'model.yaml'
        path.write_text(yaml.safe_dump({
            'prototypes': [
                {'id': 'joy', 'type': 'emotion', 'weights': {'valence': 1.0}, 'gates': ['valence >= 0.2']},
            ],
            'expressions': [
                {'id': 'elated', 'prerequisites': [{'logic': {'>=': [{'var': 'emotions.joy'}, 0.6]}}]},
            ],
        }))
        registry = load_registry(path)
        assert registry.get_prototype('joy').gates == ['valence >= 0.2']
        assert registry.get_expression('elated').id == 'elated'
