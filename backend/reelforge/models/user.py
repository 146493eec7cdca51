"""
User model with a prepaid credit balance.
Authenticated via Firebase (firebase_uid); the core only reads and
mutates `credits`.
"""
from sqlalchemy import Column, String, Integer, Index, DateTime, CheckConstraint
from reelforge.models.base import Base, generate_uuid, utcnow


class User(Base):
    """User model with credit balance."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    firebase_uid = Column(String(128), nullable=False, unique=True)  # Firebase user ID
    email = Column(String(255), nullable=True)  # Email from Firebase token
    credits = Column(Integer, nullable=False, default=0)  # Credit balance, never negative

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_user_firebase_uid", "firebase_uid"),
        CheckConstraint("credits >= 0", name="ck_user_credits_non_negative"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, firebase_uid={self.firebase_uid}, credits={self.credits})>"
