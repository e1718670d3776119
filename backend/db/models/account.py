from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

ROLE_ADMIN = "admin"
ROLE_USER = "user"

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUS_BANNED = "banned"

class Account(BaseModel):
    """A user record as held by the credential store."""

    id: str
    name: str
    surname: str
    username: str
    email: str
    hashed_password: str
    role: str = ROLE_USER
    status: str = STATUS_ACTIVE
    refresh_token: Optional[str] = None
    reset_code: Optional[str] = None
    reset_code_expires: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Account":
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls(**data)

    def public(self) -> Dict[str, Any]:
        """Projection safe to return to clients: no password, token or reset fields."""
        return {
            "id": self.id,
            "name": self.name,
            "surname": self.surname,
            "username": self.username,
            "email": self.email,
            "isAdmin": self.is_admin,
            "status": self.status,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
