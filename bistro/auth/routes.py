# =============================================================================
# User / Auth API Routes
# =============================================================================
#
# Public:
#   POST /users/signup      - Create account, returns tokens
#   POST /users/login       - Check credentials, returns tokens
#
# Protected (token header):
#   GET  /users             - List users (?recordPerPage=&page=&startIndex=)
#   GET  /users/{user_id}   - Get one user
#
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from bistro.api.routes import page_params
from bistro.auth.accounts import AccountService, AuthResponse, LoginRequest, SignupRequest, UserPage
from bistro.auth.gate import authenticate
from bistro.core.models import PageRequest, UserPublic

router = APIRouter(prefix="/users", tags=["users"])


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


# =============================================================================
# Public Endpoints
# =============================================================================


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(data: SignupRequest, accounts: AccountService = Depends(get_accounts)):
    """Create a new account and return its first token pair."""
    return await accounts.signup(data)


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, accounts: AccountService = Depends(get_accounts)):
    """Authenticate and get tokens."""
    return await accounts.login(data)


# =============================================================================
# Protected Endpoints
# =============================================================================


@router.get("", response_model=UserPage, dependencies=[Depends(authenticate)])
async def list_users(
    paging: PageRequest = Depends(page_params),
    accounts: AccountService = Depends(get_accounts),
):
    return await accounts.page_users(paging)


@router.get("/{user_id}", response_model=UserPublic, dependencies=[Depends(authenticate)])
async def get_user(user_id: str, accounts: AccountService = Depends(get_accounts)):
    return await accounts.get_user(user_id)
