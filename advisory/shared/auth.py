"""
Shared authentication service
"""
from datetime import datetime, timedelta
from typing import Optional, Dict
from fastapi import Header
from jose import JWTError, jwt
from advisory.config import settings


class AuthService:
    def __init__(self):
        self.secret_key = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm

    def decode_token(self, token: str) -> Optional[Dict]:
        """Decode and verify JWT token"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return payload
        except JWTError:
            return None

    def create_access_token(self, user_id: str) -> str:
        """
        Mint an access token for a user id.
        Real tokens come from the accounts service; this signs test tokens
        with the same shared secret.
        """
        expire = datetime.utcnow() + timedelta(hours=settings.access_token_expire_hours)
        payload = {
            "sub": user_id,
            "exp": expire,
            "iat": datetime.utcnow(),
            "type": "access"
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def user_id_from_header(self, authorization: Optional[str]) -> Optional[str]:
        """Extract the user id from a `Bearer <jwt>` header value"""
        if not authorization:
            return None

        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None

        payload = self.decode_token(token.strip())
        if not payload or payload.get("type") != "access":
            return None

        return payload.get("sub")


# Create global instance
auth_service = AuthService()


# ---------------------------------------------------------
# FastAPI Dependencies
# ---------------------------------------------------------
def get_optional_user_id(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Caller identity when a valid access token is attached, else None"""
    return auth_service.user_id_from_header(authorization)

