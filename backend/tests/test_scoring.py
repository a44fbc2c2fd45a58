"""Compatibility scoring tests."""

import pytest

from peerstudy.services.scoring import DEFAULT_WEIGHTS, ScoringWeights, compatibility_score, strongest_subjects


class TestCompatibilityScore:
    """Complementary strengths and the group-size bonus."""

    def test_weak_current_strong_candidate_with_matching_preference(self):
        """Math 2 vs Math 9, both preferring 3 -> 10 + 5."""
        assert compatibility_score({"Math": 2}, {"Math": 9}, 3, 3) == 15

    def test_strong_current_weak_candidate(self):
        assert compatibility_score({"Math": 9}, {"Math": 1}, 3, 4) == 10

    def test_each_shared_subject_counts_independently(self):
        current = {"Math": 2, "Physics": 9}
        candidate = {"Math": 9, "Physics": 2}
        assert compatibility_score(current, candidate, 2, 5) == 20

    @pytest.mark.parametrize(
        "current, candidate",
        [
            (4, 9),  # 4 is not weak
            (2, 7),  # 7 is not strong
            (5, 5),
            (8, 8),
            (3, 3),
        ],
    )
    def test_scores_outside_both_bands_contribute_nothing(self, current, candidate):
        assert compatibility_score({"Math": current}, {"Math": candidate}, 1, 2) == 0

    def test_subjects_rated_by_one_side_only_are_ignored(self):
        assert compatibility_score({"Math": 1}, {"Chemistry": 10}, 1, 2) == 0

    def test_empty_profile_scores_only_the_preference_bonus(self):
        assert compatibility_score({}, {"Math": 10}, 4, 4) == 5
        assert compatibility_score({}, {}, 4, 3) == 0

    def test_preference_bonus_is_commutative(self):
        assert compatibility_score({}, {}, 3, 3) == compatibility_score({}, {}, 3, 3) == 5

    def test_swapping_sides_keeps_the_complementary_total(self):
        a = {"Math": 2, "Physics": 9, "Art": 5}
        b = {"Math": 10, "Physics": 0, "Art": 9}
        assert compatibility_score(a, b, 1, 2) == compatibility_score(b, a, 2, 1) == 20

    def test_custom_weights(self):
        weights = ScoringWeights(weak_below=5, strong_above=6, complementary_bonus=1, group_size_bonus=0)
        assert compatibility_score({"Math": 4}, {"Math": 7}, 3, 3, weights=weights) == 1


class TestStrongestSubjects:
    def test_only_scores_above_seven(self):
        subjects = {"Math": 8, "Physics": 7, "Art": 10, "History": 0}
        assert strongest_subjects(subjects) == ["Math", "Art"]

    def test_default_weights_values(self):
        assert DEFAULT_WEIGHTS == ScoringWeights(4, 7, 10, 5)
