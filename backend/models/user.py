# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""User ORM model."""

from sqlalchemy import Column, String, Enum, DateTime, Text

from database import Base


class User(Base):
    __tablename__ = "users"

    # uuid4().hex, generated by the service at creation
    id = Column(String(32), primary_key=True)
    # SHA-256 hex of the address.  Indexed but deliberately not UNIQUE:
    # uniqueness is a check-then-insert in the service layer.
    email_hash = Column(String(64), nullable=False, index=True)
    # base64( nonce || AES-256-GCM ciphertext || tag ) – never plaintext
    email = Column(Text, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum("admin", "user", name="user_role"), nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
