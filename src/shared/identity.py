"""The acting user, as supplied by the identity collaborator."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


class Actor(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role = Role.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SYSTEM)

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id="system", role=Role.SYSTEM)
