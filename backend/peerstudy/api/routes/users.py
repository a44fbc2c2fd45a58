"""Profile and subject proficiency routes."""

from fastapi import APIRouter

from peerstudy.api.deps import CurrentUser, Uow
from peerstudy.schemas.user import SubjectsUpdate, UserProfile
from peerstudy.services import accounts

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/profile", response_model=UserProfile)
async def get_profile(current_user: CurrentUser, uow: Uow) -> UserProfile:
    return await accounts.get_profile(uow, current_user.id)


@router.post("/subjects", response_model=UserProfile)
@router.put("/subjects", response_model=UserProfile)
async def save_subjects(data: SubjectsUpdate, current_user: CurrentUser, uow: Uow) -> UserProfile:
    """Replace the whole subject set and the preferred group size."""
    return await accounts.save_subjects(uow, current_user.id, data)
