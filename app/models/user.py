from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime

from app.models.base import ObjectIdStr, utcnow


class UserInDB(BaseModel):
    """User database schema."""
    id: ObjectIdStr = Field(validation_alias="_id")
    name: str
    email: str
    hashed_password: str
    is_deleted: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )


class Profile(BaseModel):
    """Role profile, stored in ``profiles`` keyed by the user id."""
    id: ObjectIdStr = Field(validation_alias="_id")
    is_admin: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True)


class CurrentUser(BaseModel):
    """The signed-in user as seen by request handlers."""
    id: str
    email: str
    name: str
    is_admin: bool = False
