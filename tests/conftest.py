"""Shared fixtures for the affectdiag test suite."""

import numpy as np
import pytest

from affectdiag.models import AffectContext, Prototype
from affectdiag.registry import InMemoryRegistry


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def emotion_prototypes():
    return [
        Prototype('joy', {'valence': 1.0, 'arousal': 0.5}, ['valence >= 0.2'], 'emotion'),
        Prototype('contentment', {'valence': 1.0, 'arousal': -0.4}, ['valence >= 0.1', 'threat <= 0.2'], 'emotion'),
        Prototype('fear', {'threat': 1.0, 'arousal': 0.6, 'valence': -0.3}, ['threat >= 0.3'], 'emotion'),
    ]


@pytest.fixture
def sexual_prototypes():
    return [
        Prototype('desire', {'sexual_arousal': 1.0, 'valence': 0.3}, ['sexual_arousal >= 0.3'], 'sexual'),
    ]


@pytest.fixture
def registry(emotion_prototypes, sexual_prototypes):
    return InMemoryRegistry(
        prototypes=emotion_prototypes + sexual_prototypes,
        expressions=[
            {
                'id': 'elated',
                'prerequisites': [
                    {'logic': {'>=': [{'var': 'emotions.joy'}, 0.5]}},
                    {'logic': {'>=': [{'var': 'moodAxes.valence'}, 40]}},
                ],
            },
            {
                'id': 'impossible',
                'prerequisites': [
                    {'logic': {'>': [{'var': 'emotions.joy'}, 1.5]}},
                ],
            },
        ],
    )


def make_context(mood=None, sexual=None, traits=None):
    """AffectContext with neutral defaults for unspecified axes."""
    return AffectContext(
        mood_axes=mood or {},
        sexual_axes=sexual or {},
        trait_axes=traits or {},
    )
