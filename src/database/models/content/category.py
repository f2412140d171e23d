"""
Category: named grouping of questions.
Schema only. Rows are supplied by the content pipeline; read-only here.
"""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin


class Category(Base, IdMixin):
    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
