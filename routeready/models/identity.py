from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class IdentityKind(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class Identity(BaseModel):
    """The unit usage is metered against: an anonymous session or an account."""
    model_config = ConfigDict(frozen=True)

    kind: IdentityKind
    key: str
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.kind == IdentityKind.AUTHENTICATED

    @property
    def lock_key(self) -> str:
        return f"{self.kind.value}:{self.key}"

    @classmethod
    def anonymous(cls, session_id: str) -> "Identity":
        return cls(kind=IdentityKind.ANONYMOUS, key=session_id)

    @classmethod
    def authenticated(cls, user_id: str, email: Optional[str] = None) -> "Identity":
        return cls(kind=IdentityKind.AUTHENTICATED, key=user_id, email=email)
