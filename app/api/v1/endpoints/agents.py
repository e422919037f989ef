from typing import List

from fastapi import APIRouter, Depends

from app.schemas.agent import ProfileOut
from app.schemas.common import UserRole
from app.services.session_resolver import Identity
from app.repositories.profile_repository import ProfileRepository
from app.api.deps import get_profile_repo, require_admin

router = APIRouter(prefix="/agents", tags=["Agents"])


@router.get("", response_model=List[ProfileOut])
async def list_agents(
    _admin: Identity = Depends(require_admin),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
) -> List[ProfileOut]:
    """Every BDA profile, for assignment pickers and filters."""
    agents = await profile_repo.list_by_role(UserRole.bda.value)
    return [ProfileOut.model_validate(agent) for agent in agents]
