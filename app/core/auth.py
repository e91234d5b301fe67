from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import decode_access_token
from app.db.mongo import get_db
from app.models.user import CurrentUser
from app.repositories.user_repo import ProfileRepository, UserRepository

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db = Depends(get_db)
) -> CurrentUser:
    """Get current user from JWT token, with the admin flag from their profile."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise credentials_exception

    user = await UserRepository(db).get_user_by_id(user_id)
    if user is None:
        raise credentials_exception

    # No profile means a plain viewer
    profile = await ProfileRepository(db).get_profile(user_id)

    return CurrentUser(
        id=user.id,
        email=user.email,
        name=user.name,
        is_admin=profile.is_admin if profile else False
    )


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Only admins may change debts. Enforced here, whatever the client shows."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return current_user
