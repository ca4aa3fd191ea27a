"""
Checkout: turn paid cart items into enrollments

Steps, in order:
1. seat update    - per class, totalEnrolled +1 / availableSeats -1 (dispatched concurrently)
2. payment record - raw checkout payload
3. cart cleanup   - the user's cart rows for these classes
4. enrollment     - one row referencing every class

Each completed step registers an undo action. If a later step fails the undo
actions run in reverse order and PartialEnrollmentFailure is raised.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, List, Tuple

from bson import ObjectId

from lms.database import LMSStore, to_object_id
from lms.errors import NotFound, PartialEnrollmentFailure, ValidationError

SEAT_TAKEN = {"$inc": {"totalEnrolled": 1, "availableSeats": -1}}
SEAT_RELEASED = {"$inc": {"totalEnrolled": -1, "availableSeats": 1}}

UndoAction = Tuple[str, Callable[[], Awaitable]]


async def _take_seat(store: LMSStore, oid: ObjectId) -> ObjectId:
    result = await store.classes.update_one({"_id": oid}, SEAT_TAKEN)
    if result.matched_count == 0:
        raise NotFound(f"Class not found: {oid}")
    return oid


async def _release_seats(store: LMSStore, oids: List[ObjectId]):
    await asyncio.gather(*[store.classes.update_one({"_id": oid}, SEAT_RELEASED) for oid in oids])


async def _compensate(undo: List[UndoAction]) -> None:
    for name, action in reversed(undo):
        try:
            await action()
            print(f"⚠️  Checkout rollback: undid {name}")
        except Exception as e:
            print(f"❌ Checkout rollback failed for {name}: {e}")


async def validate_classes(store: LMSStore, class_ids: List[str]) -> List[ObjectId]:
    """Ids must be well-formed and refer to existing classes"""
    if not class_ids:
        raise ValidationError("classesId must contain at least one class")

    oids = list(dict.fromkeys(to_object_id(c) for c in class_ids))
    found = await store.classes.count_documents({"_id": {"$in": oids}})
    if found != len(oids):
        raise NotFound("One or more classes not found")
    return oids


async def enroll(
    store: LMSStore,
    user_email: str,
    class_ids: List[str],
    transaction_id: str,
    payload: dict
) -> dict:
    oids = await validate_classes(store, class_ids)
    id_strings = [str(oid) for oid in oids]
    undo: List[UndoAction] = []
    step = "seat update"

    try:
        results = await asyncio.gather(
            *[_take_seat(store, oid) for oid in oids],
            return_exceptions=True
        )
        taken = [r for r in results if isinstance(r, ObjectId)]
        if taken:
            undo.append(("seat update", lambda: _release_seats(store, taken)))
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            raise failures[0]

        step = "payment record"
        payment_doc = dict(payload)
        payment_doc["date"] = datetime.utcnow()
        payment = await store.payments.insert_one(payment_doc)
        undo.append(("payment record", lambda: store.payments.delete_one({"_id": payment.inserted_id})))

        step = "cart cleanup"
        cart_query = {"classId": {"$in": id_strings}, "userMail": user_email}
        removed = await store.cart.find(cart_query).to_list(length=None)
        if removed:
            await store.cart.delete_many({"_id": {"$in": [row["_id"] for row in removed]}})
            undo.append(("cart cleanup", lambda: store.cart.insert_many(removed)))

        step = "enrollment record"
        enrollment = await store.enrolled.insert_one({
            "userEmail": user_email,
            "classesId": oids,
            "transactionId": transaction_id,
            "enrolledDate": datetime.utcnow(),
            "status": "active",
        })
    except Exception as e:
        print(f"❌ Checkout failed at {step} for {user_email}: {e}")
        await _compensate(undo)
        raise PartialEnrollmentFailure(step, e)

    print(f"✅ Enrolled {user_email} in {len(oids)} class(es), transaction {transaction_id}")
    return {
        "paymentId": str(payment.inserted_id),
        "enrollmentId": str(enrollment.inserted_id),
        "classesId": id_strings,
        "removedCartItems": len(removed),
    }
