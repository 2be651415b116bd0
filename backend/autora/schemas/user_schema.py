from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from ..models.enums import UserRole

class User(BaseModel):
    """Schema for reading a user (output)"""
    id: str
    email: str
    name: Optional[str] = None
    image_url: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserSummary(BaseModel):
    """Reduced user attached to admin booking listings"""
    id: str
    name: Optional[str] = None
    email: str
    image_url: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True

class RoleUpdate(BaseModel):
    role: UserRole

class ProviderProfile(BaseModel):
    """Identity fields read from the auth provider"""
    provider_user_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
