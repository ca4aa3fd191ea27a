from pydantic import BaseModel, Field
from typing import Any, List, Optional, Union
from enum import Enum

# ==================== ENUMS ====================

class CourseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

COURSE_STATUSES = {s.value for s in CourseStatus}

# Raw numeric input as sent by the dashboard form (numbers or numeric strings)
NumericInput = Union[int, float, str]

# ==================== COURSE MODELS ====================

class CourseCreate(BaseModel):
    name: str
    image: Optional[str] = None
    instructorName: Optional[str] = None
    instructorEmail: Optional[str] = None
    availableSeats: NumericInput
    price: NumericInput
    description: Optional[str] = None
    category: Optional[str] = None
    prerequisites: Optional[Any] = None
    objectives: Optional[Any] = None
    targetAudience: Optional[str] = None
    modules: Optional[List[Any]] = None
    totalDuration: Optional[str] = None
    totalLessons: Optional[NumericInput] = None
    level: Optional[str] = None

class CourseUpdate(BaseModel):
    name: Optional[str] = None
    image: Optional[str] = None
    availableSeats: Optional[NumericInput] = None
    price: Optional[NumericInput] = None
    description: Optional[str] = None
    category: Optional[str] = None
    prerequisites: Optional[Any] = None
    objectives: Optional[Any] = None
    targetAudience: Optional[str] = None
    modules: Optional[List[Any]] = None
    totalDuration: Optional[str] = None
    totalLessons: Optional[NumericInput] = None
    level: Optional[str] = None

class StatusChange(BaseModel):
    # Plain string so an unknown value is answered with InvalidStatus (400)
    status: str
    reason: Optional[str] = None

class FeedbackCreate(BaseModel):
    feedback: str
    rating: Optional[int] = Field(None, ge=1, le=5)
