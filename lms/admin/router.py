"""
Admin dashboard statistics
"""

from fastapi import APIRouter, Depends
from pymongo.errors import PyMongoError

from lms.auth.guards import UserContext, require_admin
from lms.database import LMSStore, get_store
from lms.errors import StoreError

router = APIRouter(prefix="/api", tags=["Admin"])


async def get_dashboard_stats(store: LMSStore) -> dict:
    """Course counts by status, instructor count and enrollment totals"""
    status_counts = await store.classes.aggregate([
        {"$group": {"_id": "$status", "count": {"$sum": 1}}}
    ]).to_list(length=None)
    by_status = {item["_id"]: item["count"] for item in status_counts}

    seats_pipeline = await store.classes.aggregate([
        {"$group": {"_id": None, "total": {"$sum": "$totalEnrolled"}}}
    ]).to_list(length=1)

    return {
        "approvedClasses": by_status.get("approved", 0),
        "pendingClasses": by_status.get("pending", 0),
        "rejectedClasses": by_status.get("rejected", 0),
        "totalClasses": sum(by_status.values()),
        "instructors": await store.users.count_documents({"role": "instructor"}),
        "totalUsers": await store.users.count_documents({}),
        "totalEnrolled": await store.enrolled.count_documents({}),
        "totalSeatsSold": seats_pipeline[0]["total"] if seats_pipeline else 0,
    }


@router.get("/admin-stats")
async def admin_stats(
    admin: UserContext = Depends(require_admin),
    store: LMSStore = Depends(get_store)
):
    try:
        stats = await get_dashboard_stats(store)
    except PyMongoError as e:
        print(f"❌ Error fetching admin stats: {e}")
        raise StoreError(str(e))
    return {"success": True, "data": stats}
