# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from revtrack.models.base import Base, IntegerIDMixin, TimestampMixin


class User(IntegerIDMixin, TimestampMixin, Base):
    __tablename__ = "users"

    login: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    mail: Mapped[str | None] = mapped_column(String(255), default=None)
    firstname: Mapped[str] = mapped_column(String(30), default="")
    lastname: Mapped[str] = mapped_column(String(30), default="")

    __table_args__ = (Index("idx_users_mail", "mail"),)
