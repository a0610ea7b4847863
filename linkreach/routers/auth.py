from fastapi import APIRouter, Depends

from linkreach.auth.authenticate import authenticate
from linkreach.models import User

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=dict)
async def get_current_user(user: User = Depends(authenticate)):
    """Used by the executor extension to validate its token and read the account limits."""
    return {
        "id": user.id,
        "email": user.email,
        "firstname": user.firstname,
        "lastname": user.lastname,
        "is_admin": user.is_admin,
        "daily_action_limit": user.daily_action_limit,
    }
