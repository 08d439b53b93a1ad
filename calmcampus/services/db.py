# async mongodb client for the backend api
# uses motor for non-blocking operations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from calmcampus.config import settings

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """establish connection to mongodb"""
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        self.client = AsyncIOMotorClient(settings.MONGODB_URI)
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection
        await self.client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    async def ensure_indexes(self):
        """create the indexes the api relies on (idempotent)"""
        # one mood entry per user per day — the daily check-in upserts on this key
        await self.mood_entries.create_index([("user_id", 1), ("date", 1)], unique=True)
        await self.mood_entries.create_index([("user_id", 1), ("created_at", -1)])
        await self.users.create_index("email", unique=True)
        await self.users.create_index("phone")
        await self.teacher_student_relationships.create_index(
            [("teacher_id", 1), ("student_id", 1)], unique=True
        )
        await self.appointments.create_index([("user_id", 1), ("scheduled_at", 1)])
        await self.group_messages.create_index([("group_id", 1), ("created_at", 1)])
        await self.group_members.create_index([("group_id", 1), ("user_id", 1)], unique=True)
        await self.notifications.create_index([("user_id", 1), ("created_at", -1)])
        logger.info("MongoDB indexes ensured")

    # collection accessors

    @property
    def users(self):
        return self.db["users"]

    @property
    def mood_entries(self):
        return self.db["mood_entries"]

    @property
    def activity_completions(self):
        return self.db["activity_completions"]

    @property
    def wellness_sessions(self):
        return self.db["wellness_sessions"]

    @property
    def appointments(self):
        return self.db["appointments"]

    @property
    def teacher_student_relationships(self):
        return self.db["teacher_student_relationships"]

    @property
    def peer_groups(self):
        return self.db["peer_groups"]

    @property
    def group_members(self):
        return self.db["group_members"]

    @property
    def group_messages(self):
        return self.db["group_messages"]

    @property
    def notifications(self):
        return self.db["notifications"]


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
