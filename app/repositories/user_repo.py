from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId
from datetime import datetime, timezone

from app.models.user import UserInDB, Profile
from app.schemas.auth import UserSignup
from app.core.security import hash_password


class UserRepository:
    """User database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["users"]

    async def create_user(self, user_data: UserSignup) -> UserInDB:
        """Create a new user."""
        user_dict = {
            "name": user_data.name,
            "email": user_data.email,
            "hashed_password": hash_password(user_data.password),
            "is_deleted": False,
            "created_at": datetime.now(timezone.utc),
            "updated_at": datetime.now(timezone.utc)
        }

        result = await self.collection.insert_one(user_dict)
        user_dict["_id"] = result.inserted_id
        return UserInDB(**user_dict)

    async def get_user_by_email(self, email: str) -> UserInDB | None:
        """Get user by email, including deleted accounts."""
        user = await self.collection.find_one({"email": email})
        if user:
            return UserInDB(**user)
        return None

    async def get_user_by_id(self, user_id: str) -> UserInDB | None:
        """Get a live user by ID."""
        if not ObjectId.is_valid(user_id):
            return None
        user = await self.collection.find_one({
            "_id": ObjectId(user_id),
            "is_deleted": False
        })
        if user:
            return UserInDB(**user)
        return None


class ProfileRepository:
    """Role profiles, one per user, sharing the user's _id."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["profiles"]

    async def create_profile(self, user_id: str, is_admin: bool = False) -> Profile:
        profile_dict = {
            "_id": ObjectId(user_id),
            "is_admin": is_admin,
            "created_at": datetime.now(timezone.utc)
        }
        await self.collection.insert_one(profile_dict)
        return Profile(**profile_dict)

    async def get_profile(self, user_id: str) -> Profile | None:
        """Look up the profile for a user id."""
        if not ObjectId.is_valid(user_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(user_id)})
        if doc:
            return Profile(**doc)
        return None
