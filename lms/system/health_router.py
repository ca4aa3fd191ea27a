from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from lms.database import LMSStore, get_store

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(store: LMSStore = Depends(get_store)):
    """Store connectivity probe"""
    try:
        await store.ping()
    except Exception as e:
        print(f"❌ Health check failed: {e}")
        return JSONResponse(status_code=500, content={
            "success": False,
            "status": "Error",
            "database": "Disconnected",
            "error": str(e)
        })

    return {
        "success": True,
        "status": "OK",
        "database": "Connected",
        "timestamp": datetime.utcnow().isoformat()
    }
