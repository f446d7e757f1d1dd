"""
RefreshToken model: one row per live refresh token, keyed by the token's JTI.
Fields:
- jti (primary key)
- user_id (String(36)) - FK to users.id
- family_id - session lineage, carried over on every rotation
- expires_at (epoch seconds, same value as the token's exp claim)
- created_at

A row is deleted when its token is rotated, revoked or found expired,
so "row present and not expired" is the whole liveness test.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func

from models.base_model import Base


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    jti = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    family_id = Column(String(64), nullable=False)
    expires_at = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} family={self.family_id}>"
