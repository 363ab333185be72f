from __future__ import annotations


class InvalidImageError(ValueError):
    """An image handed to the motion code is empty or cannot be compared.

    This is a caller contract violation: the current call is aborted and
    nothing is retried.
    """
