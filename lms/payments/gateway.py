"""
Razorpay-backed payment gateway
The only operation the API needs: create an intent for an amount, hand the
client something it can complete the payment with.
"""

import math
from typing import Optional

import razorpay
from fastapi import Request

from lms.config import get_config
from lms.errors import LMSError, ValidationError


class PaymentGateway:
    def __init__(self, key_id: Optional[str], key_secret: Optional[str], currency: str = "USD"):
        self.key_id = key_id
        self.currency = currency
        self.client = razorpay.Client(auth=(key_id, key_secret))

    @staticmethod
    def to_minor_units(price) -> int:
        """Price in major units -> integer minor units (cents/paise)"""
        try:
            amount = float(price)
        except (TypeError, ValueError):
            raise ValidationError(f"price must be a number, got {price!r}")
        if not math.isfinite(amount) or amount <= 0:
            raise ValidationError("price must be a positive number")
        return int(round(amount * 100))

    def create_payment_intent(self, price, currency: Optional[str] = None, receipt: Optional[str] = None) -> dict:
        amount = self.to_minor_units(price)
        order_data = {
            "amount": amount,
            "currency": (currency or self.currency).upper(),
            "payment_capture": 1,
        }
        if receipt:
            order_data["receipt"] = receipt

        try:
            order = self.client.order.create(data=order_data)
        except razorpay.errors.BadRequestError as e:
            raise ValidationError(f"Payment provider rejected request: {e}")
        except Exception as e:
            print(f"❌ Error creating payment intent: {e}")
            raise LMSError(f"Payment gateway error: {e}")

        return {
            "clientSecret": order["id"],
            "amount": order.get("amount", amount),
            "currency": order.get("currency", order_data["currency"]),
            "key_id": self.key_id,
        }


# ==================== DEPENDENCY ====================

async def get_payment_gateway(request: Request) -> PaymentGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        config = get_config()
        gateway = PaymentGateway(
            config.RAZORPAY_KEY_ID,
            config.RAZORPAY_KEY_SECRET,
            config.PAYMENT_CURRENCY
        )
        request.app.state.gateway = gateway
    return gateway
