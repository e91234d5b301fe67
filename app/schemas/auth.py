from pydantic import BaseModel, EmailStr, Field


class UserResponse(BaseModel):
    """Schema for the signed-in user"""
    id: str
    name: str
    email: EmailStr
    is_admin: bool = False


class UserSignup(BaseModel):
    """Schema for user signup"""
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)


class UserLogin(BaseModel):
    """Schema for user login"""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Schema for authentication token response"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
