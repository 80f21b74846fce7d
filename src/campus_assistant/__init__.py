"""Campus assistant package."""

from .config import Settings

__all__ = ["Settings"]
