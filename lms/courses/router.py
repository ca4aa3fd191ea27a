from fastapi import APIRouter, Depends, Query
from pymongo.errors import PyMongoError

from lms.auth.guards import (
    UserContext, get_current_user, require_admin, require_instructor_or_admin, verify_self
)
from lms.courses import lifecycle
from lms.courses.models import CourseCreate, CourseStatus, CourseUpdate, FeedbackCreate, StatusChange
from lms.database import LMSStore, get_store, serialize_mongo, serialize_many
from lms.errors import Forbidden, NotFound, StoreError

router = APIRouter(prefix="/api", tags=["Classes"])


def _ensure_owner(user: UserContext, course: dict) -> None:
    """Instructors may only touch their own courses; admins any"""
    if not user.is_admin and course.get("instructorEmail") != user.email:
        raise Forbidden("Not the instructor of this class")


# ==================== INSTRUCTOR DASHBOARD ====================

async def _instructor_classes(store: LMSStore, user: UserContext, email: str, status: str = None):
    verify_self(user, email)
    try:
        classes = await lifecycle.list_instructor_courses(store, email, status)
    except PyMongoError as e:
        print(f"❌ Error fetching instructor classes: {e}")
        raise StoreError(str(e))

    print(f"✅ Instructor classes ({status or 'all'}) for {email}: {len(classes)}")
    return {
        "success": True,
        "data": {
            "classes": serialize_many(classes),
            "total": len(classes),
            "instructor": email
        }
    }


@router.get("/instructor/my-classes")
async def my_classes(
    email: str = Query(...),
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    return await _instructor_classes(store, user, email)


@router.get("/instructor/approved-classes")
async def approved_classes(
    email: str = Query(...),
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    return await _instructor_classes(store, user, email, CourseStatus.APPROVED.value)


@router.get("/instructor/pending-classes")
async def pending_classes(
    email: str = Query(...),
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    return await _instructor_classes(store, user, email, CourseStatus.PENDING.value)


@router.get("/instructor/rejected-classes")
async def rejected_classes(
    email: str = Query(...),
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    return await _instructor_classes(store, user, email, CourseStatus.REJECTED.value)


# ==================== COURSE CRUD ====================

@router.post("/new-class", status_code=201)
async def new_class(
    course: CourseCreate,
    user: UserContext = Depends(require_instructor_or_admin),
    store: LMSStore = Depends(get_store)
):
    """
    Submit a course for review (status=pending)
    """
    data = course.dict()
    data["instructorEmail"] = data.get("instructorEmail") or user.email
    data["instructorName"] = data.get("instructorName") or user.name
    _ensure_owner(user, data)

    try:
        course_id = await lifecycle.submit_course(store, data)
    except PyMongoError as e:
        print(f"❌ Error adding class: {e}")
        raise StoreError(str(e))

    return {
        "success": True,
        "data": {"insertedId": course_id},
        "message": "Class created successfully"
    }


@router.get("/classes")
async def approved_catalog(store: LMSStore = Depends(get_store)):
    """Public catalog: approved classes only"""
    try:
        classes = await store.classes.find({"status": CourseStatus.APPROVED.value}).to_list(length=None)
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many(classes)}


@router.get("/classes-manage")
async def manage_classes(
    admin: UserContext = Depends(require_admin),
    store: LMSStore = Depends(get_store)
):
    try:
        classes = await store.classes.find().sort("submitted", -1).to_list(length=None)
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many(classes)}


@router.get("/popular-classes")
async def popular_classes(limit: int = Query(6, ge=1, le=50), store: LMSStore = Depends(get_store)):
    try:
        classes = await (
            store.classes.find({"status": CourseStatus.APPROVED.value})
            .sort("totalEnrolled", -1)
            .limit(limit)
            .to_list(length=limit)
        )
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many(classes)}


@router.get("/class/{course_id}")
async def class_detail(course_id: str, store: LMSStore = Depends(get_store)):
    try:
        course = await lifecycle.get_course(store, course_id)
    except PyMongoError as e:
        raise StoreError(str(e))
    if not course:
        raise NotFound("Class not found")
    return {"success": True, "data": serialize_mongo(course)}


# ==================== LIFECYCLE ====================

@router.patch("/change-status/{course_id}")
async def change_status(
    course_id: str,
    data: StatusChange,
    admin: UserContext = Depends(require_admin),
    store: LMSStore = Depends(get_store)
):
    try:
        result = await lifecycle.transition_course(store, course_id, data.status, data.reason)
    except PyMongoError as e:
        print(f"❌ Error updating status: {e}")
        raise StoreError(str(e))

    return {
        "success": True,
        "data": result,
        "message": f"Class status updated to {data.status}"
    }


@router.put("/update-class/{course_id}")
async def update_class(
    course_id: str,
    data: CourseUpdate,
    user: UserContext = Depends(require_instructor_or_admin),
    store: LMSStore = Depends(get_store)
):
    """
    Edit a class. Any edit sends it back to pending for re-review.
    """
    try:
        course = await lifecycle.get_course(store, course_id)
        if not course:
            raise NotFound("Class not found")
        _ensure_owner(user, course)
        result = await lifecycle.edit_course(store, course_id, data.dict(exclude_none=True))
    except PyMongoError as e:
        print(f"❌ Error updating class: {e}")
        raise StoreError(str(e))

    return {"success": True, "data": result, "message": "Class updated successfully"}


@router.post("/class-feedback/{course_id}", status_code=201)
async def class_feedback(
    course_id: str,
    data: FeedbackCreate,
    admin: UserContext = Depends(require_admin),
    store: LMSStore = Depends(get_store)
):
    try:
        feedback_id = await lifecycle.attach_feedback(
            store, course_id, admin.email, data.feedback, data.rating
        )
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": {"feedbackId": feedback_id}}
