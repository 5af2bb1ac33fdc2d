"""Points engine for scored activities."""

from .points import score

__all__ = ["score"]
