"""Application services wrapping media collaborators."""

from .recorder import RecorderAdapter

__all__ = ["RecorderAdapter"]
