from dataclasses import dataclass

from poker.models import ROLE_PROJECT_MANAGER, ROLE_DEVELOPER
from .errors import Forbidden


@dataclass(frozen=True)
class Caller:
    """Identity of whoever issues a round operation.

    Built by the transport layer from the authenticated user; the voting
    services treat it as already validated.
    """
    user_id: int
    role: str

    @classmethod
    def from_user(cls, user) -> 'Caller':
        return cls(user_id=int(user.id), role=user.role)

    @property
    def is_facilitator(self) -> bool:
        return self.role == ROLE_PROJECT_MANAGER

    @property
    def is_developer(self) -> bool:
        return self.role == ROLE_DEVELOPER

    def require_facilitator(self, action: str) -> None:
        if not self.is_facilitator:
            raise Forbidden(f'Only the project manager may {action}')
