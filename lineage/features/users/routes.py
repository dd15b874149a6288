from fastapi import APIRouter, Depends

from lineage.features.users.dependencies import get_current_user
from lineage.features.users.models import User
from lineage.features.users.schemas import UserResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return current_user
