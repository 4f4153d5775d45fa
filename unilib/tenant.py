from __future__ import annotations

from dataclasses import dataclass

ADMIN = "Admin"
STUDENT = "Student"


@dataclass(frozen=True)
class TenantContext:
    """
    Caller identity + university scope.

    Repositories take this instead of a bare university id, so every Book/Loan
    query they run is filtered by ``university_id``.
    """
    university_id: int
    user_id: int
    role: str = STUDENT
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

    @classmethod
    def from_claims(cls, identity, claims: dict) -> "TenantContext":
        university_id = claims.get("university_id")
        if identity is None or university_id is None:
            raise ValueError("JWT has no user/university claims")
        return cls(
            university_id=int(university_id),
            user_id=int(identity),
            role=claims.get("role") or STUDENT,
            email=claims.get("email"),
        )
