"""
User accounts, token issuance and instructor applications
"""

import hmac
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from pymongo.errors import DuplicateKeyError, PyMongoError

from lms.auth.guards import UserContext, get_current_user, require_admin, verify_self_or_privileged
from lms.auth.tokens import create_access_token
from lms.config import get_config
from lms.database import LMSStore, get_store, serialize_mongo, serialize_many, to_object_id
from lms.errors import Conflict, Forbidden, NotFound, StoreError, ValidationError
from lms.users.models import (
    DEFAULT_ROLE, InstructorApplicationCreate, RoleOverride, TokenRequest,
    UserCreate, UserUpdate, normalize_user
)

router = APIRouter(prefix="/api", tags=["Users"])


# ==================== TOKEN ====================

@router.post("/set-token")
async def set_token(data: TokenRequest, store: LMSStore = Depends(get_store)):
    """
    Issue a bearer token. Role is read from the store, never from the request.
    """
    try:
        user = await store.users.find_one({"email": data.email})
    except PyMongoError as e:
        print(f"❌ Token creation error: {e}")
        raise StoreError(str(e))

    role = (user or {}).get("role") or DEFAULT_ROLE
    name = data.name or (user or {}).get("name")
    token = create_access_token(data.email, name, role)

    print(f"✅ Token created for {data.email} with role: {role}")
    return {
        "success": True,
        "token": token,
        "user": {"email": data.email, "name": name, "role": role}
    }


# ==================== USERS ====================

@router.post("/new-user", status_code=201)
async def create_user(data: UserCreate, store: LMSStore = Depends(get_store)):
    """Signup. New accounts always start with the default role."""
    doc = data.dict(exclude_none=True)
    doc["role"] = DEFAULT_ROLE
    doc["createdAt"] = datetime.utcnow()

    try:
        if await store.users.find_one({"email": data.email}):
            raise Conflict("Email already registered")
        result = await store.users.insert_one(doc)
    except DuplicateKeyError:
        raise Conflict("Email already registered")
    except PyMongoError as e:
        print(f"❌ New user error: {e}")
        raise StoreError(str(e))

    return {"success": True, "data": {"insertedId": str(result.inserted_id)}}


@router.get("/users")
async def list_users(
    admin: UserContext = Depends(require_admin),
    store: LMSStore = Depends(get_store)
):
    try:
        users = await store.users.find({}).to_list(length=None)
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many([normalize_user(u) for u in users])}


@router.get("/user/{email}")
async def get_user(email: str, store: LMSStore = Depends(get_store)):
    """Normalized profile with role defaulted to 'user'"""
    try:
        user = await store.users.find_one({"email": email})
    except PyMongoError as e:
        print(f"❌ Error fetching user: {e}")
        raise StoreError(str(e))

    if not user:
        raise NotFound("User not found")
    return {"success": True, "data": serialize_mongo(normalize_user(user))}


@router.put("/update-user/{user_id}")
async def update_user(
    user_id: str,
    data: UserUpdate,
    admin: UserContext = Depends(require_admin),
    store: LMSStore = Depends(get_store)
):
    oid = to_object_id(user_id)
    updates = data.dict(exclude_none=True)
    if "role" in updates:
        updates["role"] = data.role.value
    if not updates:
        raise ValidationError("No fields to update")

    try:
        result = await store.users.update_one({"_id": oid}, {"$set": updates})
    except PyMongoError as e:
        raise StoreError(str(e))

    if result.matched_count == 0:
        raise NotFound("User not found")
    return {"success": True, "data": {"modifiedCount": result.modified_count}}


@router.delete("/delete-user/{user_id}")
async def delete_user(
    user_id: str,
    admin: UserContext = Depends(require_admin),
    store: LMSStore = Depends(get_store)
):
    oid = to_object_id(user_id)
    try:
        result = await store.users.delete_one({"_id": oid})
    except PyMongoError as e:
        raise StoreError(str(e))

    if result.deleted_count == 0:
        raise NotFound("User not found")
    return {"success": True, "data": {"deletedCount": result.deleted_count}}


@router.patch("/emergency/set-role")
async def emergency_set_role(
    data: RoleOverride,
    x_emergency_key: Optional[str] = Header(None),
    store: LMSStore = Depends(get_store)
):
    """
    Out-of-band role change for locked-out deployments (e.g. no admin left).
    Disabled unless EMERGENCY_ROLE_KEY is configured.
    """
    expected = get_config().EMERGENCY_ROLE_KEY
    if not expected:
        raise NotFound("Emergency override disabled")
    if not x_emergency_key or not hmac.compare_digest(x_emergency_key, expected):
        raise Forbidden("Invalid emergency key")

    try:
        result = await store.users.update_one(
            {"email": data.email},
            {"$set": {"role": data.role.value}}
        )
    except PyMongoError as e:
        raise StoreError(str(e))

    if result.matched_count == 0:
        raise NotFound("User not found")

    print(f"⚠️  Emergency role override: {data.email} -> {data.role.value}")
    return {"success": True, "data": {"email": data.email, "role": data.role.value}}


# ==================== INSTRUCTORS ====================

@router.get("/instructors")
async def list_instructors(store: LMSStore = Depends(get_store)):
    try:
        instructors = await store.users.find({"role": "instructor"}).to_list(length=None)
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many([normalize_user(u) for u in instructors])}


@router.get("/popular-instructors")
async def popular_instructors(limit: int = Query(6, ge=1, le=50), store: LMSStore = Depends(get_store)):
    """Instructors ranked by total enrollments across their approved courses"""
    pipeline = [
        {"$match": {"status": "approved"}},
        {"$group": {
            "_id": "$instructorEmail",
            "totalEnrolled": {"$sum": "$totalEnrolled"},
            "totalClasses": {"$sum": 1}
        }},
        {"$sort": {"totalEnrolled": -1}},
        {"$limit": limit},
        {"$lookup": {
            "from": "users",
            "localField": "_id",
            "foreignField": "email",
            "as": "instructor"
        }},
        {"$unwind": "$instructor"},
        {"$project": {
            "_id": 0,
            "instructorEmail": "$_id",
            "totalEnrolled": 1,
            "totalClasses": 1,
            "instructor": 1
        }}
    ]
    try:
        result = await store.classes.aggregate(pipeline).to_list(length=limit)
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many(result)}


@router.post("/as-instructor", status_code=201)
async def apply_as_instructor(
    data: InstructorApplicationCreate,
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    verify_self_or_privileged(user, data.email)
    doc = data.dict()
    doc["createdAt"] = datetime.utcnow()
    try:
        result = await store.applied.insert_one(doc)
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": {"insertedId": str(result.inserted_id)}}


@router.get("/applied-instructors/{email}")
async def get_application(
    email: str,
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    verify_self_or_privileged(user, email)
    try:
        application = await store.applied.find_one({"email": email})
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": serialize_mongo(application)}
