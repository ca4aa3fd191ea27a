from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError, PyMongoError

from lms.auth.guards import UserContext, get_current_user, verify_self_or_privileged
from lms.database import LMSStore, get_store, serialize_many, to_object_id
from lms.errors import NotFound, StoreError, ValidationError

router = APIRouter(prefix="/api", tags=["Cart"])

ALREADY_IN_CART = "Class already in cart"


class CartItemCreate(BaseModel):
    classId: str
    userMail: Optional[str] = None


@router.post("/add-to-cart", status_code=201)
async def add_to_cart(
    item: CartItemCreate,
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    """
    Existence check then insert. The unique (classId, userMail) index turns the
    concurrent-duplicate case into the same 400.
    """
    user_mail = item.userMail or user.email
    verify_self_or_privileged(user, user_mail)
    oid = to_object_id(item.classId)
    class_id = str(oid)

    try:
        if not await store.classes.find_one({"_id": oid}, {"_id": 1}):
            raise NotFound("Class not found")

        existing = await store.cart.find_one({"classId": class_id, "userMail": user_mail})
        if existing:
            raise ValidationError(ALREADY_IN_CART)

        result = await store.cart.insert_one({
            "classId": class_id,
            "userMail": user_mail,
            "submitted": datetime.utcnow()
        })
    except DuplicateKeyError:
        raise ValidationError(ALREADY_IN_CART)
    except PyMongoError as e:
        print(f"❌ Error adding to cart: {e}")
        raise StoreError(str(e))

    return {
        "success": True,
        "data": {"insertedId": str(result.inserted_id)},
        "message": "Class added to cart successfully"
    }


@router.get("/cart/{email}")
async def get_cart(
    email: str,
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    """Classes currently in a user's cart"""
    verify_self_or_privileged(user, email)
    try:
        items = await store.cart.find({"userMail": email}).to_list(length=None)
        class_ids = [to_object_id(it["classId"]) for it in items]
        classes = await store.classes.find({"_id": {"$in": class_ids}}).to_list(length=None)
    except PyMongoError as e:
        print(f"❌ Error fetching cart: {e}")
        raise StoreError(str(e))
    return {"success": True, "data": serialize_many(classes)}


@router.delete("/delete-cart-item/{class_id}")
async def delete_cart_item(
    class_id: str,
    user: UserContext = Depends(get_current_user),
    store: LMSStore = Depends(get_store)
):
    try:
        result = await store.cart.delete_one({"classId": str(to_object_id(class_id)), "userMail": user.email})
    except PyMongoError as e:
        raise StoreError(str(e))

    if result.deleted_count == 0:
        raise NotFound("Class not in cart")
    return {"success": True, "data": {"deletedCount": result.deleted_count}}
