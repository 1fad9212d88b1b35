from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgr.db.base import Base, CreatedAtMixin


class Profile(CreatedAtMixin, Base):
    """Per-user metadata. The primary key is the identity provider's user id."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    plan: Mapped[str] = mapped_column(String(20), default="free", nullable=False)
    avatar_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    settings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
