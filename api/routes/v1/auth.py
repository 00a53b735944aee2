"""Identity provider endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentIdentity, get_current_identity
from api.schemas.auth import IdentityResponse, SignInRequest, SignUpRequest, TokenResponse
from api.schemas.common import MessageResponse
from api.services import auth as service
from core.config import settings
from core.exceptions import AuthenticationError, DuplicateRecordError
from database.engine import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/sign-up",
    response_model=IdentityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def sign_up(
    request: SignUpRequest,
    db: AsyncSession = Depends(get_db),
) -> IdentityResponse:
    try:
        user = await service.sign_up(db, request.email, request.password)
    except DuplicateRecordError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return IdentityResponse.model_validate(user)


@router.post(
    "/sign-in",
    response_model=TokenResponse,
    summary="Sign in with email and password",
)
async def sign_in(
    request: SignInRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    try:
        token, session, user = await service.sign_in(
            db,
            request.email,
            request.password,
            settings.jwt_secret_key,
            settings.jwt_algorithm,
            settings.access_token_expire_minutes,
        )
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TokenResponse(
        access_token=token,
        expires_at=session.expires_at,
        user_id=user.id,
        email=user.email,
    )


@router.post(
    "/sign-out",
    response_model=MessageResponse,
    summary="Sign out the current session",
)
async def sign_out(
    identity: CurrentIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await service.sign_out(db, identity.session)
    return MessageResponse(message="Signed out")


@router.get(
    "/me",
    response_model=IdentityResponse,
    summary="Current identity",
)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_identity),
) -> IdentityResponse:
    return IdentityResponse.model_validate(identity.user)
