"""Per-request authorization context."""
import uuid
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class AuthContext:
    """
    Identity of the caller as asserted by the auth service.

    The production core trusts role and sections as given; it only goes
    back to the users table for verification, account status and the
    manager ownership chain.
    """
    user_id: uuid.UUID
    role: str
    sections: List[str] = field(default_factory=list)

    def has_section(self, stage: str) -> bool:
        return stage in self.sections
