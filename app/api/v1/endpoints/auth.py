from fastapi import APIRouter, Request, status

from app.api.deps import DB, Bus, ClientIP, CurrentUser, TokenStore
from app.schemas.auth import (
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.schemas.base import MessageResponse
from app.services.auth_service import AuthService

router = APIRouter(tags=["Authentication"])


def _token_response(tokens: dict) -> TokenResponse:
    return TokenResponse(**{**tokens, "user": UserResponse.model_validate(tokens["user"])})


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    data: RegisterRequest,
    db: DB,
    token_store: TokenStore,
    bus: Bus,
    ip: ClientIP,
):
    """Create an account and return its first token pair."""
    auth_service = AuthService(db, token_store, bus)
    user = await auth_service.register_user(data)
    tokens = await auth_service.create_tokens(user, ip=ip, user_agent=request.headers.get("user-agent"))
    return _token_response(tokens)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    data: LoginRequest,
    db: DB,
    token_store: TokenStore,
    bus: Bus,
    ip: ClientIP,
):
    """
    Authenticate user and return access/refresh tokens.
    """
    auth_service = AuthService(db, token_store, bus)
    tokens = await auth_service.login(
        data.email, data.password, ip=ip, user_agent=request.headers.get("user-agent")
    )
    return _token_response(tokens)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    data: RefreshTokenRequest,
    db: DB,
    token_store: TokenStore,
    ip: ClientIP,
):
    """
    Exchange a refresh token for a new token pair.
    The presented refresh token is invalidated.
    """
    auth_service = AuthService(db, token_store)
    tokens = await auth_service.refresh_tokens(
        data.refresh_token, ip=ip, user_agent=request.headers.get("user-agent")
    )
    return _token_response(tokens)


@router.post("/logout", response_model=MessageResponse)
async def logout(data: RefreshTokenRequest, db: DB, token_store: TokenStore):
    await AuthService(db, token_store).logout(data.refresh_token)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_profile(current_user: CurrentUser):
    """Get the authenticated user's profile."""
    return UserResponse.model_validate(current_user)
