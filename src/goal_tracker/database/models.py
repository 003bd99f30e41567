"""Database models for the goal tracker.

## Security Notes

- Passwords are stored only as bcrypt hashes
- A NULL `hashed_password` disables password login for that account; such
  users can still sign in through an OIDC provider by email
- Emails are stored lowercased and unique regardless of case, so a verified
  provider email maps to at most one account

## Schema Overview

```
users
  id               integer primary key
  username         unique, not null
  hashed_password  nullable
  email            nullable, unique on lower(email)
```
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255), unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"


Index("ix_users_email_lower", func.lower(User.email), unique=True)
