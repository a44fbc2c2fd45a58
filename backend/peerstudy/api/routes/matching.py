"""Peer recommendation route."""

from fastapi import APIRouter

from peerstudy.api.deps import CurrentUser, Uow
from peerstudy.schemas.matching import MatchCandidate
from peerstudy.services.matching import recommend_peers

router = APIRouter(tags=["matching"])


@router.get("/match", response_model=list[MatchCandidate])
async def match(current_user: CurrentUser, uow: Uow) -> list[MatchCandidate]:
    """Top ungrouped peers for the current user, best match first."""
    return await recommend_peers(uow, current_user.id)
