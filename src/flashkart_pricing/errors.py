from __future__ import annotations


class InvalidInputError(ValueError):
    """Raised when catalog or store-policy data violates the pricing contract."""
