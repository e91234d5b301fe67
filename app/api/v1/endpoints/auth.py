from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.auth import get_current_user
from app.core.config import settings
from app.core.security import create_access_token, verify_password
from app.db.mongo import get_db
from app.models.user import CurrentUser
from app.repositories.user_repo import ProfileRepository, UserRepository
from app.schemas.auth import UserSignup, UserLogin, TokenResponse, UserResponse

router = APIRouter()


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_data: UserSignup, db = Depends(get_db)):
    """Register a new user"""
    user_repo = UserRepository(db)

    # Check if user already exists
    if await user_repo.get_user_by_email(user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = await user_repo.create_user(user_data)
    is_admin = user_data.email.lower() in {email.lower() for email in settings.ADMIN_EMAILS}
    await ProfileRepository(db).create_profile(user.id, is_admin=is_admin)

    return TokenResponse(
        access_token=create_access_token(user.id, user.email),
        token_type="bearer",
        user=UserResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            is_admin=is_admin
        )
    )


@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin, db = Depends(get_db)):
    """Login with email and password"""
    user = await UserRepository(db).get_user_by_email(credentials.email)
    if not user or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    # Check if user is deleted
    if user.is_deleted:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been deleted"
        )

    profile = await ProfileRepository(db).get_profile(user.id)

    return TokenResponse(
        access_token=create_access_token(user.id, user.email),
        token_type="bearer",
        user=UserResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            is_admin=profile.is_admin if profile else False
        )
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: CurrentUser = Depends(get_current_user)):
    """Get current user information"""
    return UserResponse(**current_user.model_dump())


@router.post("/logout")
async def logout(request: Request, current_user: CurrentUser = Depends(get_current_user)):
    """Logout: the client deletes its token, the server forgets the debt session"""
    request.app.state.debt_sessions.drop(current_user.id)
    return {"message": "Logged out successfully"}
