import uuid

import jwt
from datetime import datetime, timedelta, timezone
from django.conf import settings


def create_jwt_token(payload: dict, expires_minutes: int = 60) -> str:
    """Sign a JWT carrying *payload* that expires after *expires_minutes*."""
    now = datetime.now(timezone.utc)
    payload = dict(payload, exp=now + timedelta(minutes=expires_minutes), iat=now, jti=uuid.uuid4().hex)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_jwt_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def issue_session_token(user, expires_minutes: int = 60) -> str:
    """Issue a token for *user* and make it the user's only valid session."""
    token = create_jwt_token({'user_id': user.id, 'role': user.role}, expires_minutes)
    user.current_token_user = token
    user.save(update_fields=['current_token_user'])
    return token
