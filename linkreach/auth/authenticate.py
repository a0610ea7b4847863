from fastapi import Depends, HTTPException

from linkreach.config import Config
from linkreach.models import User

from .google import bearer, verify_google_token_db


async def _get_offline_admin_user() -> User:
    user, _ = await User.get_or_create(
        email=Config.OFFLINE_ADMIN_EMAIL,
        defaults={
            "firstname": "Dev",
            "lastname": "Admin",
            "is_admin": True,
            "disabled": False,
            "daily_action_limit": Config.DAILY_ACTION_LIMIT,
        },
    )
    if user.disabled:
        user.disabled = False
        await user.save(update_fields=["disabled"])
    return user


async def authenticate(bearer_creds=Depends(bearer)) -> User:
    # offline mode: the dev admin is always signed in
    if Config.OFFLINE_MODE:
        return await _get_offline_admin_user()

    if bearer_creds:
        token = (bearer_creds.credentials or "").strip()
        if token.lower().startswith("bearer "):
            token = token.split(None, 1)[1].strip()

        user = await verify_google_token_db(token)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid token or user not provisioned")
        return user

    raise HTTPException(status_code=401, detail="Unauthorized")
