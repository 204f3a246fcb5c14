"""
Tests for weight-vector candidate pair filtering.
"""

import pytest

from affectdiag.models import Prototype
from affectdiag.overlap.candidates import CandidatePairFilter, cosine_similarity, valid_weights


class TestMetrics:

    def test_identical_weights(self):
        m = CandidatePairFilter().compute_metrics({'valence': 1.0, 'arousal': 0.5}, {'valence': 1.0, 'arousal': 0.5})
        assert m['active_axis_overlap'] == 1.0
        assert m['sign_agreement'] == 1.0
        assert m['cosine_similarity'] == pytest.approx(1.0)

    def test_small_weights_inactive(self):
        """|w| below 0.08 is not an active axis."""
        m = CandidatePairFilter().compute_metrics({'valence': 1.0, 'threat': 0.05}, {'valence': 1.0})
        assert m['active_axis_overlap'] == 1.0

    def test_no_active_axes(self):
        m = CandidatePairFilter().compute_metrics({'valence': 0.01}, {'arousal': 0.02})
        assert m['active_axis_overlap'] == 1.0, "Empty sets use jaccard_empty_set_value"
        assert m['sign_agreement'] == 0.0

    def test_soft_sign(self):
        """Weights under 0.15 count as neutral, so 0.1 and -0.1 agree."""
        m = CandidatePairFilter().compute_metrics({'valence': 0.1}, {'valence': -0.1})
        assert m['sign_agreement'] == 1.0

    def test_cosine_missing_axes_zero(self):
        assert cosine_similarity({'a': 1.0}, {'b': 1.0}) == 0.0


class TestFilterCandidates:

    def test_filters_and_stats(self):
        prototypes = [
            Prototype('joy', {'valence': 1.0, 'arousal': 0.5}),
            Prototype('elation', {'valence': 0.9, 'arousal': 0.6}),
            Prototype('fear', {'threat': 1.0, 'arousal': 0.6}),
            Prototype('sadness', {'valence': -1.0, 'arousal': -0.5}),
            Prototype('broken', {'valence': 'lots'}),
        ]
        pairs, stats = CandidatePairFilter().filter_candidates(prototypes)

        assert [(p.prototype_a.id, p.prototype_b.id) for p in pairs] == [('joy', 'elation')]
        assert stats['prototypes_with_valid_weights'] == 4
        assert stats['total_possible_pairs'] == 6
        assert stats['passed_filtering'] == 1
        rejected = (
            stats['rejected_by_active_axis_overlap']
            + stats['rejected_by_sign_agreement']
            + stats['rejected_by_cosine_similarity']
        )
        assert rejected == 5

    def test_cap(self):
        prototypes = [Prototype(f'p{i}', {'valence': 1.0, 'arousal': 0.5}) for i in range(5)]
        pairs, stats = CandidatePairFilter({'max_candidate_pairs': 3}).filter_candidates(prototypes)
        assert len(pairs) == 3
        assert stats['passed_filtering'] == 10

    def test_valid_weights(self):
        assert valid_weights({}) is None
        assert valid_weights(None) is None
        assert valid_weights({'valence': True}) is None
        assert valid_weights({'valence': 1}) == {'valence': 1.0}
