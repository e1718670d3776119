from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field

class Comment(BaseModel):
    id: str
    product_id: str
    user_id: str
    comment: str = ""
    rating: int
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Comment":
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls(**data)

    def public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product": self.product_id,
            "user": self.user_id,
            "comment": self.comment,
            "rating": self.rating,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
