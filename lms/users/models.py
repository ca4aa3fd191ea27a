from pydantic import BaseModel, EmailStr
from typing import Optional
from enum import Enum

# ==================== ENUMS ====================

class Role(str, Enum):
    USER = "user"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"

DEFAULT_ROLE = Role.USER.value

# ==================== USER MODELS ====================

class TokenRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = None

class UserCreate(BaseModel):
    name: str
    email: EmailStr
    photoUrl: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    about: Optional[str] = None
    skills: Optional[str] = None

class UserUpdate(BaseModel):
    name: Optional[str] = None
    photoUrl: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    about: Optional[str] = None
    skills: Optional[str] = None
    role: Optional[Role] = None

class RoleOverride(BaseModel):
    email: EmailStr
    role: Role

# ==================== INSTRUCTOR APPLICATION ====================

class InstructorApplicationCreate(BaseModel):
    name: Optional[str] = None
    email: EmailStr
    experience: Optional[str] = None


def normalize_user(user: dict) -> dict:
    """Public profile shape; role falls back to 'user' when the record has none"""
    return {
        "_id": user.get("_id"),
        "name": user.get("name") or "",
        "email": user.get("email"),
        "role": user.get("role") or DEFAULT_ROLE,
        "photoUrl": user.get("photoUrl") or "",
        "gender": user.get("gender") or "",
        "address": user.get("address") or "",
        "about": user.get("about") or "",
        "skills": user.get("skills") or "",
        "phone": user.get("phone") or "",
        "createdAt": user.get("createdAt"),
    }
