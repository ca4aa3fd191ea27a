from bson import ObjectId
from pymongo.errors import PyMongoError

from conftest import add_class, auth, find_class, run
from lms.payments.checkout import SEAT_TAKEN


class FailingInserts:
    """Collection wrapper whose insert_one always fails"""

    def __init__(self, inner):
        self.inner = inner

    async def insert_one(self, *args, **kwargs):
        raise PyMongoError("disk full")

    def __getattr__(self, name):
        return getattr(self.inner, name)


class FailingSeat:
    """Classes collection whose seat update fails for one course"""

    def __init__(self, inner, class_id):
        self.inner = inner
        self.oid = ObjectId(class_id)

    async def update_one(self, query, update, *args, **kwargs):
        if query.get("_id") == self.oid and update == SEAT_TAKEN:
            raise PyMongoError("write conflict")
        return await self.inner.update_one(query, update, *args, **kwargs)

    def __getattr__(self, name):
        return getattr(self.inner, name)


class FailingDeletes:
    """Collection wrapper whose delete_many always fails"""

    def __init__(self, inner):
        self.inner = inner

    async def delete_many(self, *args, **kwargs):
        raise PyMongoError("not primary")

    def __getattr__(self, name):
        return getattr(self.inner, name)


def fill_cart(client, headers, *class_ids):
    for class_id in class_ids:
        assert client.post("/api/add-to-cart", json={"classId": class_id}, headers=headers).status_code == 201


def checkout_body(*class_ids, email="student@example.com"):
    return {
        "userEmail": email,
        "classesId": list(class_ids),
        "transactionId": "pay_123",
        "amount": 99.98,
        "paymentMethod": "card",
    }


# ==================== PAYMENT INTENT ====================

def test_create_payment_intent(client, gateway):
    res = client.post("/api/create-payment-intent", json={"price": 49.99})
    assert res.status_code == 200
    assert res.json()["data"]["clientSecret"] == "order_test_1"
    assert gateway.calls == [(4999, "USD")]


def test_payment_intent_rejects_bad_price(client, gateway):
    assert client.post("/api/create-payment-intent", json={"price": "abc"}).status_code == 400
    assert client.post("/api/create-payment-intent", json={"price": 0}).status_code == 400
    assert gateway.calls == []


# ==================== CHECKOUT ====================

def test_checkout_enrolls_every_class(client, store, student):
    a = add_class(store, status="approved", seats=10, totalEnrolled=2)
    b = add_class(store, status="approved", seats=3)
    untouched = add_class(store, status="approved")
    fill_cart(client, student, a, b, untouched)

    res = client.post("/api/payment-info", json=checkout_body(a, b), headers=student)
    assert res.status_code == 200, res.text

    assert find_class(store, a)["totalEnrolled"] == 3
    assert find_class(store, a)["availableSeats"] == 9
    assert find_class(store, b)["totalEnrolled"] == 1
    assert find_class(store, b)["availableSeats"] == 2
    assert find_class(store, untouched)["totalEnrolled"] == 0

    payments = run(store.payments.find({}).to_list(length=None))
    assert len(payments) == 1
    assert payments[0]["transactionId"] == "pay_123"
    assert payments[0]["paymentMethod"] == "card"

    remaining = run(store.cart.find({"userMail": "student@example.com"}).to_list(length=None))
    assert [row["classId"] for row in remaining] == [untouched]

    enrollments = run(store.enrolled.find({}).to_list(length=None))
    assert len(enrollments) == 1
    assert enrollments[0]["classesId"] == [ObjectId(a), ObjectId(b)]
    assert enrollments[0]["userEmail"] == "student@example.com"
    assert enrollments[0]["transactionId"] == "pay_123"


def test_failed_enrollment_insert_rolls_back(client, store, student):
    a = add_class(store, status="approved", seats=5)
    b = add_class(store, status="approved", seats=5)
    fill_cart(client, student, a, b)
    store.enrolled = FailingInserts(store.enrolled)

    res = client.post("/api/payment-info", json=checkout_body(a, b), headers=student)
    assert res.status_code == 500
    assert "enrollment record" in res.json()["detail"]

    for class_id in (a, b):
        course = find_class(store, class_id)
        assert course["availableSeats"] == 5
        assert course["totalEnrolled"] == 0
    assert run(store.payments.count_documents({})) == 0
    assert run(store.cart.count_documents({"userMail": "student@example.com"})) == 2


def test_failed_seat_update_releases_taken_seats(client, store, student):
    a = add_class(store, status="approved", seats=5)
    b = add_class(store, status="approved", seats=5)
    fill_cart(client, student, a, b)
    store.classes = FailingSeat(store.classes, b)

    res = client.post("/api/payment-info", json=checkout_body(a, b), headers=student)
    assert res.status_code == 500
    assert "seat update" in res.json()["detail"]

    for class_id in (a, b):
        course = find_class(store, class_id)
        assert course["availableSeats"] == 5
        assert course["totalEnrolled"] == 0
    assert run(store.payments.count_documents({})) == 0
    assert run(store.enrolled.count_documents({})) == 0
    assert run(store.cart.count_documents({"userMail": "student@example.com"})) == 2


def test_failed_payment_record_rolls_back(client, store, student):
    a = add_class(store, status="approved", seats=5)
    b = add_class(store, status="approved", seats=5)
    fill_cart(client, student, a, b)
    store.payments = FailingInserts(store.payments)

    res = client.post("/api/payment-info", json=checkout_body(a, b), headers=student)
    assert res.status_code == 500
    assert "payment record" in res.json()["detail"]

    for class_id in (a, b):
        assert find_class(store, class_id)["availableSeats"] == 5
        assert find_class(store, class_id)["totalEnrolled"] == 0
    assert run(store.enrolled.count_documents({})) == 0
    assert run(store.cart.count_documents({"userMail": "student@example.com"})) == 2


def test_failed_cart_cleanup_rolls_back(client, store, student):
    a = add_class(store, status="approved", seats=5)
    b = add_class(store, status="approved", seats=5)
    fill_cart(client, student, a, b)
    store.cart = FailingDeletes(store.cart)

    res = client.post("/api/payment-info", json=checkout_body(a, b), headers=student)
    assert res.status_code == 500
    assert "cart cleanup" in res.json()["detail"]

    for class_id in (a, b):
        assert find_class(store, class_id)["availableSeats"] == 5
        assert find_class(store, class_id)["totalEnrolled"] == 0
    assert run(store.payments.count_documents({})) == 0
    assert run(store.enrolled.count_documents({})) == 0
    assert run(store.cart.count_documents({"userMail": "student@example.com"})) == 2


def test_checkout_clears_cart_rows_added_with_any_id_spelling(client, store, student):
    a = add_class(store, status="approved", seats=5)
    fill_cart(client, student, a.upper())

    res = client.post("/api/payment-info", json=checkout_body(a.upper()), headers=student)
    assert res.status_code == 200, res.text
    assert run(store.cart.count_documents({"userMail": "student@example.com"})) == 0
    assert find_class(store, a)["totalEnrolled"] == 1


def test_checkout_unknown_class_changes_nothing(client, store, student):
    a = add_class(store, status="approved", seats=5)
    res = client.post("/api/payment-info", json=checkout_body(a, str(ObjectId())), headers=student)
    assert res.status_code == 404
    assert find_class(store, a)["availableSeats"] == 5
    assert run(store.payments.count_documents({})) == 0


def test_checkout_requires_classes(client, student):
    assert client.post("/api/payment-info", json=checkout_body(), headers=student).status_code == 400


def test_checkout_for_another_user_is_forbidden(client, store, student):
    a = add_class(store, status="approved")
    res = client.post("/api/payment-info", json=checkout_body(a, email="victim@example.com"), headers=student)
    assert res.status_code == 403


# ==================== HISTORY ====================

def test_enrolled_classes_and_payment_history(client, store, student):
    a = add_class(store, status="approved", name="Alpha")
    b = add_class(store, status="approved", name="Beta")
    client.post("/api/payment-info", json=checkout_body(a, b), headers=student)

    enrolled = client.get("/api/enrolled-classes/student@example.com", headers=student).json()["data"]
    assert sorted(row["classes"]["name"] for row in enrolled) == ["Alpha", "Beta"]
    assert sorted(row["classId"] for row in enrolled) == sorted([a, b])

    history = client.get("/api/payment-history/student@example.com", headers=student).json()
    assert history["total"] == 1
    assert history["data"][0]["transactionId"] == "pay_123"


def test_history_is_private(client, store, student):
    other = auth("nosy@example.com")
    assert client.get("/api/enrolled-classes/student@example.com", headers=other).status_code == 403
    assert client.get("/api/payment-history/student@example.com", headers=other).status_code == 403


def test_instructor_can_view_student_history(client, store, student, instructor):
    res = client.get("/api/payment-history/student@example.com", headers=instructor)
    assert res.status_code == 200
