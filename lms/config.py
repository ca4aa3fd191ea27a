"""
Frasa LMS Configuration
Environment-driven settings for the store, token signing and payments
"""

import os
from typing import Optional


class Config:
    """Validated configuration - fails fast on missing vars"""

    def __init__(self):
        self.MONGO_URL = self._require_env("MONGO_URL")
        self.MONGO_DB = os.getenv("MONGO_DB", "frasa-id-lms")

        self.ACCESS_TOKEN_SECRET = self._require_env("ACCESS_TOKEN_SECRET")
        self.TOKEN_ALGORITHM = "HS256"
        self.TOKEN_EXPIRE_HOURS = int(os.getenv("TOKEN_EXPIRE_HOURS", "24"))

        self.RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
        self.RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
        self.PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "USD").upper()

        # Unset disables the override endpoint
        self.EMERGENCY_ROLE_KEY = os.getenv("EMERGENCY_ROLE_KEY") or None

        self.PORT = int(os.getenv("PORT", "5000"))

    @staticmethod
    def _require_env(key: str) -> str:
        """Get required environment variable or crash"""
        value = os.getenv(key)
        if not value:
            raise RuntimeError(f"❌ FATAL: Missing required environment variable: {key}")
        return value


_config: Optional[Config] = None


def get_config() -> Config:
    """Load configuration once per process"""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment"""
    global _config
    _config = None
