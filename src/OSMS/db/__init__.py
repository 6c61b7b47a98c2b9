# src/OSMS/db/__init__.py
# Don't import session on package import
from .base import Base

__all__ = ["Base"]
