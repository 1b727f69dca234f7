from .base import BaseLogHandler as BaseLogHandler

__all__ = [
    "BaseLogHandler",
]
