"""
Main FastAPI Application
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from datetime import datetime

from advisory.config import settings
from advisory.exception_handlers import register_exception_handlers

# Routers
from advisory.phone.router import router as phone_router
from advisory.sms.router import router as sms_router


# ---------------------------------------------------------
# Logging Configuration
# ---------------------------------------------------------
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


# ---------------------------------------------------------
# FastAPI App Initialization
# ---------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Phone number OTP verification for the advisory platform",
    version="1.0.0",
    docs_url="/docs" if settings.enable_docs else None,
    redoc_url="/redoc" if settings.enable_docs else None,
)

register_exception_handlers(app)


# ---------------------------------------------------------
# CORS Middleware
# ---------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------
# Router Registration
# ---------------------------------------------------------
app.include_router(phone_router, prefix="/api/phone")
app.include_router(sms_router, prefix="/api/sms")


# ---------------------------------------------------------
# Root Endpoint
# ---------------------------------------------------------
@app.get("/")
async def root():
    return {
        "message": "Advisory Phone Verification API",
        "version": "1.0.0",
        "status": "running",
        "services": {
            "phone": "/api/phone",
            "sms": "/api/sms",
        },
        "docs": "/docs" if settings.enable_docs else "disabled in production",
    }


# ---------------------------------------------------------
# Health Check Endpoint
# ---------------------------------------------------------
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "advisory-phone-verification",
        "timestamp": datetime.utcnow().isoformat(),
    }
