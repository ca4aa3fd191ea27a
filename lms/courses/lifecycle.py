"""
Course lifecycle: submission, admin transitions and instructor edits

pending is the only initial state. Admins may move a course between any
two states; an edit always sends it back to pending for re-review.
"""

import math
from datetime import datetime
from typing import Any, List, Optional

from lms.courses.models import COURSE_STATUSES, CourseStatus
from lms.database import LMSStore, to_object_id
from lms.errors import InvalidStatus, NotFound, ValidationError

EDITABLE_FIELDS = (
    "name", "image", "availableSeats", "price", "description", "category",
    "prerequisites", "objectives", "targetAudience", "modules",
    "totalDuration", "totalLessons", "level",
)


# ==================== NUMERIC COERCION ====================

def parse_seats(value: Any) -> int:
    """Seat count as an integer; rejects anything that is not a whole number"""
    if isinstance(value, bool):
        raise ValidationError("availableSeats must be a number")
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"availableSeats must be a number, got {value!r}")
    if not math.isfinite(number) or not number.is_integer():
        raise ValidationError(f"availableSeats must be a whole number, got {value!r}")
    return int(number)


def parse_price(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError("price must be a number")
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"price must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ValidationError(f"price must be finite, got {value!r}")
    return number


def _coerce_numbers(fields: dict) -> dict:
    if "availableSeats" in fields:
        fields["availableSeats"] = parse_seats(fields["availableSeats"])
    if "price" in fields:
        fields["price"] = parse_price(fields["price"])
    if fields.get("totalLessons") is not None:
        fields["totalLessons"] = parse_seats(fields["totalLessons"])
    return fields


# ==================== OPERATIONS ====================

async def submit_course(store: LMSStore, course_data: dict) -> str:
    """Create a course in pending state with no enrollments"""
    course = _coerce_numbers(dict(course_data))
    course.update({
        "status": CourseStatus.PENDING.value,
        "submitted": datetime.utcnow(),
        "totalEnrolled": 0,
    })
    result = await store.classes.insert_one(course)
    return str(result.inserted_id)


async def get_course(store: LMSStore, course_id: str) -> Optional[dict]:
    return await store.classes.find_one({"_id": to_object_id(course_id)})


async def transition_course(
    store: LMSStore,
    course_id: str,
    status: str,
    reason: Optional[str] = None
) -> dict:
    """
    Admin status change. Unknown status or id leaves the record untouched.
    """
    oid = to_object_id(course_id)
    if status not in COURSE_STATUSES:
        raise InvalidStatus(f"Invalid status: {status}")

    updates = {"status": status}
    if reason:
        updates["reason"] = reason

    result = await store.classes.update_one({"_id": oid}, {"$set": updates})
    if result.matched_count == 0:
        raise NotFound("Class not found")

    return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}


async def edit_course(store: LMSStore, course_id: str, fields: dict) -> dict:
    """Overwrite editable fields and force the course back to pending"""
    oid = to_object_id(course_id)
    updates = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
    updates = _coerce_numbers(updates)
    updates["status"] = CourseStatus.PENDING.value

    result = await store.classes.update_one({"_id": oid}, {"$set": updates})
    if result.matched_count == 0:
        raise NotFound("Class not found")

    return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}


async def list_instructor_courses(
    store: LMSStore,
    email: str,
    status: Optional[str] = None
) -> List[dict]:
    query = {"instructorEmail": email}
    if status:
        query["status"] = status
    return await store.classes.find(query).to_list(length=None)


async def attach_feedback(
    store: LMSStore,
    course_id: str,
    admin_email: str,
    feedback: str,
    rating: Optional[int] = None
) -> str:
    """Insert a feedback row and point the course at it"""
    oid = to_object_id(course_id)
    if not await store.classes.find_one({"_id": oid}, {"_id": 1}):
        raise NotFound("Class not found")

    result = await store.feedback.insert_one({
        "classId": str(oid),
        "feedback": feedback,
        "rating": rating,
        "adminEmail": admin_email,
        "createdAt": datetime.utcnow(),
    })
    await store.classes.update_one({"_id": oid}, {"$set": {"feedbackId": result.inserted_id}})
    return str(result.inserted_id)
