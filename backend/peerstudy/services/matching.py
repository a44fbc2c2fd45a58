"""Peer recommendations for a single student."""

import logging

from peerstudy.config import get_settings
from peerstudy.exceptions import NotFound
from peerstudy.repositories import UnitOfWork
from peerstudy.schemas.matching import MatchCandidate
from peerstudy.schemas.user import SubjectScore
from peerstudy.services.scoring import ScoringWeights, compatibility_score, strongest_subjects

logger = logging.getLogger(__name__)


def weights_from_settings() -> ScoringWeights:
    settings = get_settings()
    return ScoringWeights(
        weak_below=settings.weak_score_threshold,
        strong_above=settings.strong_score_threshold,
        complementary_bonus=settings.complementary_bonus,
        group_size_bonus=settings.group_size_bonus,
    )


async def recommend_peers(
    uow: UnitOfWork,
    user_id: int,
    *,
    limit: int | None = None,
    weights: ScoringWeights | None = None,
) -> list[MatchCandidate]:
    """
    Rank ungrouped students by compatibility with ``user_id``.

    The pool is every other user without a group, in id order. Matching is
    offered whether or not the requester is grouped. Python's sort is stable,
    so equal scores keep pool order. An empty pool yields an empty list.
    """
    if limit is None:
        limit = get_settings().match_limit
    if weights is None:
        weights = weights_from_settings()

    requester = await uow.users.get(user_id)
    if requester is None:
        raise NotFound("User", user_id)

    pool = await uow.users.list_ungrouped_except(user_id)
    subjects = await uow.users.get_subjects_for([user_id] + [other.id for other in pool])
    current = {s.subject_name: s.score for s in subjects[user_id]}

    candidates = []
    for other in pool:
        other_subjects = {s.subject_name: s.score for s in subjects.get(other.id, [])}
        candidates.append(
            MatchCandidate(
                id=other.id,
                name=other.name,
                branch=other.branch,
                goals=other.goals,
                group_preference=other.group_preference,
                compatibility=compatibility_score(
                    current,
                    other_subjects,
                    requester.group_preference,
                    other.group_preference,
                    weights=weights,
                ),
                strongest_subjects=strongest_subjects(other_subjects, weights=weights),
                all_subjects=[
                    SubjectScore(subject_name=name, score=score) for name, score in other_subjects.items()
                ],
            )
        )

    candidates.sort(key=lambda c: c.compatibility, reverse=True)
    logger.debug("Scored %d candidates for user %s", len(candidates), user_id)
    return candidates[:limit]
