import hashlib
import logging
import time
from supabase import Client
from app.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from app.core.errors import error_handler, ErrorContext
from app.core.input_validation import validate_email
from app.core.monitoring import monitor
from fastapi import HTTPException
from typing import Dict, Any

logger = logging.getLogger(__name__)

# Short-lived token -> user cache; a dashboard load fires several requests with the same token
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


def _prune_expired(now: float) -> None:
    for key in [k for k, (_, expiry) in _AUTH_USER_CACHE.items() if expiry <= now]:
        del _AUTH_USER_CACHE[key]


def _serialize_user(user) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": user.user_metadata or {},
        "app_metadata": user.app_metadata or {},
        "email_confirmed_at": getattr(user, "email_confirmed_at", None),
        "last_sign_in_at": getattr(user, "last_sign_in_at", None),
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Email/password sign-up through Supabase Auth; the profile row is created by the DB trigger"""
        email_check = validate_email(register_data.email)
        if not email_check.is_valid:
            raise HTTPException(status_code=400, detail="; ".join(email_check.errors))

        user_metadata = {}
        if register_data.full_name:
            user_metadata["full_name"] = register_data.full_name.strip()

        try:
            auth_response = self.supabase.auth.sign_up({
                "email": email_check.sanitized_value,
                "password": register_data.password,
                "options": {"data": user_metadata}
            })
        except Exception as e:
            message = str(e).lower()
            if "already registered" in message or "already exists" in message:
                raise HTTPException(status_code=400, detail="User already exists")
            raise error_handler.to_http_exception(e, ErrorContext(action="register", component="auth"))

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Failed to register user")

        logger.info("Registered user %s", auth_response.user.id)
        return RegisterResponse(
            user_id=auth_response.user.id,
            email=auth_response.user.email or email_check.sanitized_value,
            message="User registered successfully"
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
        except Exception as e:
            message = str(e).lower()
            if "invalid" in message or "credentials" in message:
                monitor.log_security_event(
                    "authentication", "medium", details={"action": "login_failed", "email": login_data.email}
                )
                raise HTTPException(status_code=401, detail="Invalid email or password")
            raise error_handler.to_http_exception(e, ErrorContext(action="login", component="auth"))

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid credentials")

        monitor.log_security_event(
            "authentication", "low", user_id=auth_response.user.id, details={"action": "login"}
        )
        return TokenResponse(
            access_token=auth_response.session.access_token,
            refresh_token=getattr(auth_response.session, "refresh_token", None),
            token_type="bearer",
            user_id=auth_response.user.id,
            email=auth_response.user.email or login_data.email
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a JWT to the auth user, caching the answer for a minute"""
        cache_key = hashlib.sha256(token.encode()).hexdigest()
        now = time.monotonic()
        cached = _AUTH_USER_CACHE.get(cache_key)
        if cached is not None:
            user_data, expiry = cached
            if now < expiry:
                return user_data
            del _AUTH_USER_CACHE[cache_key]

        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.info("Token rejected by Supabase Auth: %s", e)
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user_data = _serialize_user(user_response.user)
        if len(_AUTH_USER_CACHE) >= _AUTH_CACHE_MAX_SIZE:
            _prune_expired(now)
        if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
            _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
        return user_data

    def logout(self, token: str) -> bool:
        """Tokens are stateless JWTs; drop our cached copy and ask Supabase to end the session"""
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            self.supabase.auth.admin.sign_out(token)
            return True
        except Exception as e:
            logger.warning("Supabase sign-out failed: %s", e)
            return False
