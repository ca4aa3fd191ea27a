from fastapi import Depends
from pymongo.errors import PyMongoError

from lms.auth.tokens import verify_access_token
from lms.database import LMSStore, get_store
from lms.errors import Forbidden, StoreError

PRIVILEGED_ROLES = {"instructor", "admin"}


class UserContext:
    """
    Authenticated caller: token claims plus the user record read for this request
    """
    def __init__(self, claims: dict, record: dict = None):
        self.claims = claims
        self.email = claims.get("email")
        self.name = claims.get("name")
        self.record = record
        # Role always comes from the store, never from the token
        self.role = (record or {}).get("role") or "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


async def get_current_user(
    claims: dict = Depends(verify_access_token),
    store: LMSStore = Depends(get_store)
) -> UserContext:
    """
    Re-reads the user on every request.
    FastAPI caches this per request only, so role changes apply on the next call.
    """
    try:
        record = await store.users.find_one({"email": claims["email"]})
    except PyMongoError as e:
        print(f"❌ Error loading user {claims.get('email')}: {e}")
        raise StoreError(str(e))
    return UserContext(claims, record)


async def require_admin(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.is_admin:
        print(f"❌ Admin access denied for: {user.email}")
        raise Forbidden("Unauthorized admin access")
    return user


async def require_instructor_or_admin(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.is_privileged:
        print(f"❌ Instructor access denied for: {user.email}")
        raise Forbidden("Only instructors can access this feature")
    return user


def verify_self(user: UserContext, email: str) -> None:
    """Self-only access: token email must match the requested email"""
    if user.email != email:
        print(f"❌ Email mismatch: {user.email} vs {email}")
        raise Forbidden("Unauthorized access - Email mismatch")


def verify_self_or_privileged(user: UserContext, email: str) -> None:
    """Owner of the resource, or any instructor/admin"""
    if user.email != email and not user.is_privileged:
        print(f"❌ Access to {email} denied for: {user.email}")
        raise Forbidden("Unauthorized access")
