"""Declarative base shared by every ORM model."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Models declare plain ``Column`` attributes with non-Mapped annotations.
    __allow_unmapped__ = True
