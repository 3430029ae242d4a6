"""
Authentication Middleware

Resolves the calling user from a Supabase JWT and exposes the shared
service-role Supabase client used by the services.
"""

import os
import logging
from fastapi import Header, HTTPException, status
from typing import Optional
from supabase import create_client, Client

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def get_supabase_admin() -> Client:
    """Get or create Supabase admin client (singleton)"""
    global _supabase_client

    if _supabase_client is None:
        supabase_url = os.getenv('SUPABASE_URL')
        supabase_key = os.getenv('SUPABASE_SERVICE_ROLE_KEY')

        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        _supabase_client = create_client(supabase_url, supabase_key)
        logger.info("✅ Supabase admin client initialized")

    return _supabase_client


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_user_id(token: str) -> str:
    """
    Look up the user that owns a Supabase access token

    Raises:
        HTTPException: 401 if the token is rejected
    """
    try:
        user_response = get_supabase_admin().auth.get_user(token)
    except Exception as e:
        logger.error(f"❌ Error verifying JWT: {str(e)}")
        raise _unauthorized("Invalid authentication token")

    if not user_response or not user_response.user:
        logger.warning("🔒 Invalid token - no user found")
        raise _unauthorized("Invalid authentication token")

    user_id = user_response.user.id
    logger.debug(f"✅ JWT validated successfully for user: {user_id}")
    return user_id


async def verify_supabase_jwt(authorization: Optional[str] = Header(None)) -> str:
    """
    Verify Supabase JWT token from Authorization header

    Args:
        authorization: Authorization header value (Bearer TOKEN)

    Returns:
        The user_id extracted from the JWT token

    Raises:
        HTTPException: If token is missing or invalid
    """
    if not authorization:
        logger.warning("🔒 API request without Authorization header")
        raise _unauthorized("Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("🔒 Invalid Authorization format")
        raise _unauthorized("Invalid Authorization header format. Expected: Bearer <token>")

    return resolve_user_id(parts[1])
