"""
Payment intents, checkout and payment/enrollment history
"""

from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from pymongo.errors import PyMongoError

from lms.auth.guards import UserContext, get_current_user, verify_self_or_privileged
from lms.database import LMSStore, get_store, serialize_many
from lms.errors import StoreError
from lms.payments import checkout
from lms.payments.gateway import PaymentGateway, get_payment_gateway

router = APIRouter(prefix="/api", tags=["Payment"])


# ==================== PYDANTIC MODELS ====================

class PaymentIntentRequest(BaseModel):
    price: Union[float, str]
    currency: Optional[str] = None


class PaymentInfo(BaseModel):
    userEmail: str
    classesId: List[str]
    transactionId: str
    amount: Optional[float] = None

    class Config:
        # The payment row stores the request payload as sent
        extra = "allow"


# ==================== API ENDPOINTS ====================

@router.post("/create-payment-intent")
async def create_payment_intent(
    data: PaymentIntentRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    intent = gateway.create_payment_intent(data.price, data.currency)
    return {"success": True, "data": intent}


@router.post("/payment-info")
async def payment_info(
    data: PaymentInfo,
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    """
    Checkout: seats, payment row, cart cleanup, enrollment row.
    Rolled back as a whole if any step fails.
    """
    verify_self_or_privileged(user, data.userEmail)
    try:
        result = await checkout.enroll(
            store,
            data.userEmail,
            data.classesId,
            data.transactionId,
            data.dict()
        )
    except PyMongoError as e:
        raise StoreError(str(e))

    return {"success": True, "data": result, "message": "Payment recorded and classes enrolled"}


@router.get("/payment-history/{email}")
async def payment_history(
    email: str,
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    verify_self_or_privileged(user, email)
    try:
        payments = await store.payments.find({"userEmail": email}).sort("date", -1).to_list(length=None)
    except PyMongoError as e:
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many(payments), "total": len(payments)}


@router.get("/enrolled-classes/{email}")
async def enrolled_classes(
    email: str,
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    verify_self_or_privileged(user, email)
    pipeline = [
        {"$match": {"userEmail": email}},
        {"$lookup": {
            "from": "classes",
            "localField": "classesId",
            "foreignField": "_id",
            "as": "classes"
        }},
        {"$unwind": "$classes"},
        {"$project": {
            "_id": 0,
            "classId": "$classes._id",
            "classes": 1
        }}
    ]
    try:
        result = await store.enrolled.aggregate(pipeline).to_list(length=None)
    except PyMongoError as e:
        print(f"❌ Error fetching enrolled classes: {e}")
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many(result)}
