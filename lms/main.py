"""
Frasa LMS - Main Application
Users, class approval workflow, cart, checkout and admin stats
"""

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lms.admin.router import router as admin_router
from lms.cart.router import router as cart_router
from lms.config import get_config
from lms.courses.router import router as course_router
from lms.database import LMSStore, create_indexes
from lms.payments.router import router as payment_router
from lms.system.health_router import router as health_router
from lms.users.router import router as user_router

app = FastAPI(title="Frasa LMS API")


@app.on_event("startup")
async def startup_event():
    config = get_config()
    app.state.store = LMSStore.connect(config.MONGO_URL, config.MONGO_DB)
    await create_indexes(app.state.store)
    print("🚀 Frasa LMS initialized")


@app.on_event("shutdown")
async def shutdown_event():
    store = getattr(app.state, "store", None)
    if store is not None:
        store.close()


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== ROUTER REGISTRATION ====================
app.include_router(health_router)
app.include_router(user_router)
app.include_router(course_router)
app.include_router(cart_router)
app.include_router(payment_router)
app.include_router(admin_router)
# ============================================================


@app.get("/")
def read_root():
    return {"message": "Frasa ID LMS Server is Running"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 5000))
    uvicorn.run(app, host="0.0.0.0", port=port)
