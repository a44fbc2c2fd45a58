"""Compatibility scoring between two students."""

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class ScoringWeights:
    """
    Thresholds and bonuses for compatibility scoring.

    A score strictly below ``weak_below`` counts as weak and strictly above
    ``strong_above`` counts as strong; the two bands never overlap.
    """

    weak_below: int = 4
    strong_above: int = 7
    complementary_bonus: int = 10
    group_size_bonus: int = 5


DEFAULT_WEIGHTS = ScoringWeights()


def compatibility_score(
    current: Mapping[str, int],
    candidate: Mapping[str, int],
    current_preference: int,
    candidate_preference: int,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """
    Score how well ``candidate`` complements ``current``.

    For each subject both students rated, one direction is rewarded when the
    current student is weak and the candidate strong, and the other when the
    current student is strong and the candidate weak. Equal preferred group
    sizes add a flat bonus. Subjects rated by only one side contribute nothing.
    """
    score = 0
    for subject, current_score in current.items():
        candidate_score = candidate.get(subject)
        if candidate_score is None:
            continue
        if current_score < weights.weak_below and candidate_score > weights.strong_above:
            score += weights.complementary_bonus
        if current_score > weights.strong_above and candidate_score < weights.weak_below:
            score += weights.complementary_bonus

    if current_preference == candidate_preference:
        score += weights.group_size_bonus

    return score


def strongest_subjects(subjects: Mapping[str, int], *, weights: ScoringWeights = DEFAULT_WEIGHTS) -> list[str]:
    """Subjects rated above the strong threshold, in the mapping's order."""
    return [name for name, score in subjects.items() if score > weights.strong_above]
