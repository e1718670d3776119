from typing import Optional
from fastapi import APIRouter, Depends
from api.dependencies import AuthContext, admin_required, get_account_store, get_current_user
from db.stores import AccountStore
from schemas.user_schema import ProfileUpdate, StatusUpdate
from services.user_service import list_users, update_user_profile, update_user_status
from utils.responses import no_store_json

router = APIRouter(prefix="/users")

@router.get("")
async def all_users(page: int = 1, limit: int = 10, keyword: Optional[str] = None,
                    ctx: AuthContext = Depends(admin_required), store: AccountStore = Depends(get_account_store)):
    return no_store_json(await list_users(store, page=page, limit=limit, keyword=keyword))

@router.put("/profile")
async def update_profile(data: ProfileUpdate, ctx: AuthContext = Depends(get_current_user), store: AccountStore = Depends(get_account_store)):
    return no_store_json(await update_user_profile(ctx.account, data, store))

@router.patch("/{account_id}/status")
async def set_status(account_id: str, data: StatusUpdate, ctx: AuthContext = Depends(admin_required), store: AccountStore = Depends(get_account_store)):
    return no_store_json(await update_user_status(account_id, data.status, store))
