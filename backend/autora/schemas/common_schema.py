from pydantic import BaseModel, Field
from typing import Any, Optional

class ActionResult(BaseModel):
    """Envelope returned by every endpoint"""
    success: bool = Field(..., description="Whether the action succeeded")
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    return {"success": True, "data": data, "message": message}
