"""Value objects shared across features."""

from .identity import VerifiedIdentity

__all__ = ["VerifiedIdentity"]
