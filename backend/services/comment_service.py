from datetime import datetime
from typing import Optional
import logging

from fastapi import HTTPException

from core.errors import BadRequestError, NotFoundError, UnexpectedError
from db.models.comment import Comment
from db.stores import CommentStore
from schemas.comment_schema import CommentCreate, CommentUpdate
from utils.pagination import normalize_page, page_meta

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _check_rating(rating: Optional[int]) -> None:
    if rating is None or rating < MIN_RATING or rating > MAX_RATING:
        raise BadRequestError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")


async def create_comment(user_id: str, product_id: str, data: CommentCreate, store: CommentStore) -> dict:
    try:
        _check_rating(data.rating)
        now = datetime.utcnow()
        comment = await store.insert({
            "product_id": product_id,
            "user_id": user_id,
            "comment": data.comment or "",
            "rating": data.rating,
            "created_at": now,
            "updated_at": now,
        })
        return comment.public()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating comment: {e}")
        raise UnexpectedError()


async def list_comments(product_id: str, store: CommentStore, page=1, limit=10) -> dict:
    try:
        p = normalize_page(page, limit)
        comments, total = await store.list_for_product(product_id, p.skip, p.limit)
        result = {"comments": [c.public() for c in comments]}
        result.update(page_meta(p, total))
        result["totalComments"] = total
        return result
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing comments: {e}")
        raise UnexpectedError()


async def get_comment(comment_id: str, store: CommentStore) -> Comment:
    try:
        comment = await store.find_by_id(comment_id)
    except Exception as e:
        logger.error(f"Error loading comment {comment_id}: {e}")
        raise UnexpectedError()
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


async def update_comment(comment: Comment, data: CommentUpdate, store: CommentStore) -> dict:
    """Apply a partial update; ownership is checked by the caller."""
    try:
        changes = {}
        if data.rating is not None:
            _check_rating(data.rating)
            changes["rating"] = data.rating
        if data.comment:
            changes["comment"] = data.comment
        if not changes:
            return comment.public()
        updated = await store.update(comment.id, changes)
        if updated is None:
            raise NotFoundError("Comment not found")
        return updated.public()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating comment: {e}")
        raise UnexpectedError()


async def delete_comment(comment: Comment, store: CommentStore) -> dict:
    try:
        if not await store.delete(comment.id):
            raise NotFoundError("Comment not found")
        return {"message": "Comment deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting comment: {e}")
        raise UnexpectedError()
