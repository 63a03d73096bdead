"""
Account model: a registered user of the platform.

The password column only ever holds a bcrypt hash; hashing is done by
``AccountRepository`` before any write. ``refresh_token`` is the single
session slot: the one refresh token currently honored for this account.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func

from app.db.base_class import Base


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_name = Column(String(20), unique=True, index=True, nullable=False)  # stored lower-cased
    email = Column(String(254), unique=True, index=True, nullable=False)  # stored lower-cased
    full_name = Column(String(30), index=True, nullable=False)
    hashed_password = Column(String(60), nullable=False)
    refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    def __repr__(self) -> str:
        return f"<Account id={self.id} user_name={self.user_name!r}>"
