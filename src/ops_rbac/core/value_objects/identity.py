"""Upstream identity boundary.

Bearer credentials are verified by the identity provider integration before
anything here runs; only the verified result crosses into this package.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VerifiedIdentity:
    """Immutable, already-verified identity attached to a request."""

    user_id: str
    email: str
    name: str = ""
    photo_url: Optional[str] = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("Verified identity requires a user_id")
        if not self.email:
            raise ValueError("Verified identity requires an email")

    def __str__(self) -> str:
        return self.user_id
