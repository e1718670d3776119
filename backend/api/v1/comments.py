from fastapi import APIRouter, Depends
from api.dependencies import AuthContext, ensure_owner_or_admin, get_comment_store, get_current_user
from db.stores import CommentStore
from schemas.comment_schema import CommentCreate, CommentUpdate
from services.comment_service import create_comment, list_comments, get_comment, update_comment, delete_comment
from utils.responses import no_store_json

router = APIRouter(prefix="/comments")

@router.post("/{product_id}", status_code=201)
async def add_comment(product_id: str, data: CommentCreate, ctx: AuthContext = Depends(get_current_user), store: CommentStore = Depends(get_comment_store)):
    return no_store_json(await create_comment(ctx.account_id, product_id, data, store), status_code=201)

@router.get("/{product_id}")
async def product_comments(product_id: str, page: int = 1, limit: int = 10, store: CommentStore = Depends(get_comment_store)):
    return no_store_json(await list_comments(product_id, store, page=page, limit=limit))

@router.put("/{comment_id}")
async def edit_comment(comment_id: str, data: CommentUpdate, ctx: AuthContext = Depends(get_current_user), store: CommentStore = Depends(get_comment_store)):
    comment = await get_comment(comment_id, store)
    ensure_owner_or_admin(ctx, comment.user_id, message="You can only update your own comments")
    return no_store_json(await update_comment(comment, data, store))

@router.delete("/{comment_id}")
async def remove_comment(comment_id: str, ctx: AuthContext = Depends(get_current_user), store: CommentStore = Depends(get_comment_store)):
    comment = await get_comment(comment_id, store)
    ensure_owner_or_admin(ctx, comment.user_id, allow_admin=True, message="You can only delete your own comments")
    return no_store_json(await delete_comment(comment, store))
