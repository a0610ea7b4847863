import structlog
from fastapi.security import HTTPBearer
from google.auth import exceptions as google_exceptions
from google.auth.transport.requests import Request as GoogleRequest
from google.oauth2 import id_token

from linkreach.config import Config
from linkreach.models import User

bearer = HTTPBearer(auto_error=False)
log = structlog.get_logger()


async def verify_google_token_db(token: str) -> User | None:
    """Map a Google ID token to an existing, enabled account.

    Unknown emails are rejected; accounts are provisioned out of band.
    """
    try:
        decoded = id_token.verify_oauth2_token(token, GoogleRequest(), Config.GOOGLE_AUDIENCE)
    except (ValueError, google_exceptions.GoogleAuthError) as exc:
        log.warning("google_token_rejected", error=f"{type(exc).__name__}: {exc}")
        return None

    email = decoded.get("email")
    if Config.DEBUG_AUTH:
        log.debug("google_token_decoded", email=email, aud=decoded.get("aud"), iss=decoded.get("iss"))
    if not email:
        return None

    user = await User.get_or_none(email=email)
    if user is None:
        log.info("google_user_not_provisioned", email=email)
        return None
    if user.disabled:
        log.info("google_user_disabled", email=email, user_id=user.id)
        return None
    return user
