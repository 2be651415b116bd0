import uuid

from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.sql import func
from ..core.database import Base
from .enums import UserRole

class User(Base):
    """
    Local mirror of an auth-provider identity, created on first sight
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    clerk_user_id = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    image_url = Column(String)
    phone = Column(String)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
