from fastapi import APIRouter, status

from portfolio_api.schemas.auth import CredentialsRequest, TokenResponse
from portfolio_api.schemas.common import ErrorResponse
from portfolio_api.services import auth_service

router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
)
def register(request: CredentialsRequest):
    return TokenResponse(token=auth_service.register(request.email, request.password))


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
def login(request: CredentialsRequest):
    return TokenResponse(token=auth_service.login(request.email, request.password))
