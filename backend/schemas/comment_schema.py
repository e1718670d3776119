from pydantic import BaseModel
from typing import Optional


class CommentCreate(BaseModel):
    comment: str = ""
    rating: Optional[int] = None

class CommentUpdate(BaseModel):
    comment: Optional[str] = None
    rating: Optional[int] = None
