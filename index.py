import os
import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from routes.auth import router as auth_router
from routes.users import router as users_router
from routes.billing import router as billing_router
from routes.courses import router as courses_router
from routes.premium import router as premium_router
from services.billing_provider import get_billing_mode

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger(__name__)

def get_cors_origins():
    origins = os.getenv("CORS_ALLOW_ORIGINS")
    if not origins:
        return ["*"]
    return [origin.strip() for origin in origins.split(",") if origin.strip()]

# Initialize FastAPI app
app = FastAPI(
    title="Course Platform Backend",
    description="Accounts, plan-gated courses and Stripe subscriptions for the video course platform",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(billing_router)
app.include_router(courses_router)
app.include_router(premium_router)

@app.on_event("startup")
async def startup_event():
    logger.info(f"Course platform backend starting, billing mode: {get_billing_mode()}")
    if get_billing_mode() == "stripe" and not os.getenv("STRIPE_WEBHOOK_SECRET"):
        logger.warning("STRIPE_WEBHOOK_SECRET is not set; webhook events will be rejected")

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "billing_mode": get_billing_mode(),
    }

@app.get("/")
async def root():
    return {
        "name": "Course Platform Backend",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/auth",
            "users": "/users",
            "billing": "/billing",
            "courses": "/courses",
            "premium": "/premium",
            "health": "/health",
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("index:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
