from typing import Optional
from fastapi import APIRouter, Body, Depends
from api.dependencies import AuthContext, get_account_store, get_current_user, get_notifier
from db.stores import AccountStore
from schemas.user_schema import (
    RegisterRequest,
    LoginRequest,
    RefreshTokenRequest,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from services.notifier import Notifier
from services.user_service import (
    register_user,
    login_user,
    refresh_tokens,
    logout_user,
    request_password_reset,
    reset_password_with_code,
    change_password,
)
from utils.responses import no_store_json

router = APIRouter(prefix="/auth")

@router.post("/register", status_code=201)
async def register(data: RegisterRequest, store: AccountStore = Depends(get_account_store), notifier: Notifier = Depends(get_notifier)):
    return no_store_json(await register_user(data, store, notifier), status_code=201)

@router.post("/login")
async def login(data: LoginRequest, store: AccountStore = Depends(get_account_store)):
    return no_store_json(await login_user(data.email, data.password, store))

@router.post("/refresh-token")
async def refresh_token(data: Optional[RefreshTokenRequest] = Body(default=None), store: AccountStore = Depends(get_account_store)):
    return no_store_json(await refresh_tokens(data.refresh_token if data else None, store))

@router.post("/logout")
async def logout(ctx: AuthContext = Depends(get_current_user), store: AccountStore = Depends(get_account_store)):
    return no_store_json(await logout_user(ctx.account_id, store))

@router.get("/me")
async def read_me(ctx: AuthContext = Depends(get_current_user)):
    return no_store_json({"data": ctx.account.public()})

@router.post("/change-password")
async def change_password_endpoint(data: ChangePasswordRequest, ctx: AuthContext = Depends(get_current_user), store: AccountStore = Depends(get_account_store)):
    return no_store_json(await change_password(ctx.account, data, store))

@router.post("/forgot-password")
async def forgot_password(data: ForgotPasswordRequest, store: AccountStore = Depends(get_account_store), notifier: Notifier = Depends(get_notifier)):
    return no_store_json(await request_password_reset(data.email, store, notifier))

@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, store: AccountStore = Depends(get_account_store)):
    return no_store_json(await reset_password_with_code(data.email, data.code, data.new_password, store))
