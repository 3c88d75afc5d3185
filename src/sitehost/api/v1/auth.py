"""Authentication endpoints."""

from fastapi import APIRouter, status
from starlette.requests import Request

from src.sitehost.api.dependencies import AuthServiceDep, CurrentUser
from src.sitehost.core.rate_limit import LOGIN_RATE_LIMIT, REGISTER_RATE_LIMIT, limiter
from src.sitehost.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from src.sitehost.schemas.user import UserRead

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Username already taken"}},
)
@limiter.limit(REGISTER_RATE_LIMIT)
async def register(request: Request, data: RegisterRequest, service: AuthServiceDep) -> UserRead:
    user = await service.register(data.username, data.password)
    return UserRead.model_validate(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        200: {
            "description": "Successful authentication",
            "content": {
                "application/json": {
                    "example": {
                        "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                        "token_type": "bearer",
                        "expires_in": 86400,
                    }
                }
            },
        },
        401: {"description": "Invalid credentials"},
    },
)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(request: Request, data: LoginRequest, service: AuthServiceDep) -> LoginResponse:
    """Exchange username and password for a bearer token."""
    return await service.authenticate(data.username, data.password)


@router.get("/me", response_model=UserRead)
async def me(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)
