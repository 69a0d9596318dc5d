# app/users/utils.py

from fastapi import HTTPException, status, Depends
from fastapi.security import OAuth2PasswordBearer

from app.core.jwt import verify_token
from app.users.schemas import CurrentUser
from app.utils.logger import get_logger

logger = get_logger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login")


async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """
    Dependency resolving the platform user from the bearer token.
    The host platform issues the token; its `sub` claim is the user id.
    """
    payload = verify_token(token)
    uid = payload.get("sub")
    if not uid:
        logger.error("Token payload missing 'sub' field")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials.",
        )

    return CurrentUser(uid=uid, display_name=payload.get("name"))
