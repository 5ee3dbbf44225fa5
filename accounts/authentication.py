# authentication.py
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
import jwt
from .models import User
from .utils import decode_jwt_token


class JWTAuthentication(BaseAuthentication):
    """Resolve a Bearer token to ``(user, token)``.

    The auction services only ever see the resolved user; they authorize on
    identity equality and never inspect the token or the role claim.
    """

    def authenticate(self, request):
        auth = request.headers.get('Authorization')

        if not auth or not auth.startswith('Bearer '):
            return None

        token = auth.split(' ')[1]

        try:
            payload = decode_jwt_token(token)
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed("Token expired")
        except jwt.InvalidTokenError:
            raise AuthenticationFailed("Invalid token")

        try:
            user = User.objects.get(id=payload["user_id"])
        except (User.DoesNotExist, KeyError):
            raise AuthenticationFailed("User not found")

        # only the most recently issued token is a valid session
        if user.current_token_user != token:
            raise AuthenticationFailed("Invalid session token")

        return (user, token)

    def authenticate_header(self, request):
        return 'Bearer'
