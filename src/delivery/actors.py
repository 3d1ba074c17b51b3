"""Who is asking: the principal behind an operation."""

from dataclasses import dataclass
from enum import Enum


class ActorRole(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    DRIVER_SYSTEM = "driver_system"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def is_customer(self) -> bool:
        return self.role == ActorRole.CUSTOMER

    def label(self) -> str:
        return f"{self.role.value}:{self.user_id}"

    @classmethod
    def driver_system(cls) -> "Actor":
        return cls(user_id="driver-app", role=ActorRole.DRIVER_SYSTEM)

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id="system", role=ActorRole.SYSTEM)
