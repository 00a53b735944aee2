"""
Identity provider service functions.

Email/password accounts with bcrypt hashes; each sign-in opens an
AuthSession whose id is embedded in the issued JWT so sign-out can revoke it.
"""

from datetime import datetime, timedelta
from typing import Optional
import logging

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AuthenticationError, DuplicateRecordError
from core.security import create_access_token, hash_password, verify_jwt_token, verify_password
from core.utils.datetime import ensure_aware, now
from database.models.users import AuthSession, User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalars().first()


async def sign_up(db: AsyncSession, email: str, password: str) -> User:
    """
    Create an account.

    Raises:
        DuplicateRecordError: If the email is already registered
    """
    if await get_user_by_email(db, email) is not None:
        raise DuplicateRecordError("User", "Email already registered")

    user = User(email=email.lower(), password_hash=hash_password(password))
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"Created user {user.id}")
    return user


async def sign_in(
    db: AsyncSession,
    email: str,
    password: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 480,
) -> tuple[str, AuthSession, User]:
    """
    Verify credentials and open a session.

    Returns:
        (access_token, session, user)

    Raises:
        AuthenticationError: If the email is unknown or the password is wrong
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed sign-in attempt")
        raise AuthenticationError(INVALID_CREDENTIALS)

    issued = now()
    lifetime = timedelta(minutes=expires_minutes)
    session = AuthSession(user_id=user.id, created_at=issued, expires_at=issued + lifetime)
    db.add(session)
    await db.commit()
    await db.refresh(session)

    token = create_access_token(
        user_id=user.id,
        email=user.email,
        session_id=session.id,
        secret_key=secret_key,
        algorithm=algorithm,
        expires_delta=lifetime,
        issued_at=issued,
    )
    logger.info(f"User {user.id} signed in")
    return token, session, user


async def resolve_token(
    db: AsyncSession,
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> tuple[User, AuthSession]:
    """
    Map a bearer token to its user and live session.

    Raises:
        AuthenticationError: If the token is invalid, expired or revoked
    """
    try:
        payload = verify_jwt_token(token, secret_key, algorithm)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    session = await db.get(AuthSession, payload["session_id"])
    if session is None or session.user_id != payload["sub"]:
        raise AuthenticationError("Invalid token")
    if session.revoked_at is not None:
        raise AuthenticationError("Session has been signed out")
    if ensure_aware(session.expires_at) <= now():
        raise AuthenticationError("Token has expired")

    user = await db.get(User, session.user_id)
    if user is None:
        raise AuthenticationError("Invalid token")
    return user, session


async def sign_out(db: AsyncSession, session: AuthSession) -> datetime:
    """Revoke a session. Revoking twice keeps the first timestamp."""
    if session.revoked_at is None:
        session.revoked_at = now()
        await db.commit()
        logger.info(f"Session {session.id} signed out")
    return session.revoked_at
