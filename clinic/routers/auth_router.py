import logging
import secrets
from fastapi import APIRouter, HTTPException

from ..core.config import settings
from ..schemas.auth.auth import LoginRequest, TokenResponse
from ..utils import create_jwt_token, secret_configured

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest):
    """Exchange the configured admin credentials for a bearer token."""
    if not settings.ADMIN_PASSWORD or not secret_configured():
        raise HTTPException(status_code=503, detail="Admin login is not configured")

    username_ok = body.username.strip().lower() == settings.ADMIN_USERNAME.strip().lower()
    password_ok = secrets.compare_digest(body.password.encode(), settings.ADMIN_PASSWORD.encode())
    if not (username_ok and password_ok):
        logger.warning("Failed admin login attempt")
        raise HTTPException(status_code=401, detail="Invalid username or password")

    token = create_jwt_token({"sub": settings.ADMIN_USERNAME, "role": "admin"})
    logger.info("Admin login succeeded")
    return TokenResponse(access_token=token, expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
