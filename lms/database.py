"""
Document store wiring
One LMSStore is built at startup and handed to every request through get_store
"""

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId as BsonInvalidId
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from lms.errors import InvalidId, StoreError


class LMSStore:
    """
    Holds the client, database and every collection handle the API touches
    """

    def __init__(self, db: AsyncIOMotorDatabase, client: Optional[AsyncIOMotorClient] = None):
        self.client = client
        self.db = db
        self.users = db["users"]
        self.classes = db["classes"]
        self.cart = db["cart"]
        self.payments = db["payment"]
        self.enrolled = db["enrolled"]
        self.applied = db["applied"]
        self.feedback = db["feedback"]

    @classmethod
    def connect(cls, mongo_url: str, db_name: str) -> "LMSStore":
        client = AsyncIOMotorClient(mongo_url)
        print(f"✅ Connected to MongoDB: {db_name}")
        return cls(client[db_name], client)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    async def ping(self) -> dict:
        return await self.db.command("ping")


# ==================== DEPENDENCY ====================

async def get_store(request: Request) -> LMSStore:
    """Store dependency"""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreError("Database not initialized")
    return store


# ==================== INDEXES ====================

async def create_indexes(store: LMSStore):
    """Create MongoDB indexes for lookups and cart uniqueness"""
    try:
        await store.users.create_index("email", unique=True)
        await store.classes.create_index("status")
        await store.classes.create_index([("instructorEmail", 1), ("status", 1)])

        # Closes the add-to-cart check-then-insert race
        await store.cart.create_index([("classId", 1), ("userMail", 1)], unique=True)

        await store.enrolled.create_index("userEmail")
        await store.payments.create_index("userEmail")
        await store.applied.create_index("email")

        print("✅ LMS indexes created successfully")
    except Exception as e:
        print(f"⚠️  Index creation warning: {e}")


# ==================== HELPERS ====================

def to_object_id(value: str) -> ObjectId:
    """Parse a path/body id, raising InvalidId when it is not a well-formed ObjectId"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (BsonInvalidId, TypeError):
        raise InvalidId(f"Invalid id: {value}")


def serialize_mongo(value: Any) -> Any:
    """Convert ObjectIds (at any depth) to strings so documents are JSON-safe"""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_mongo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_mongo(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def serialize_many(docs: list) -> list:
    return [serialize_mongo(doc) for doc in docs]
