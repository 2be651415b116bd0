from fastapi import APIRouter, Depends

from ...core.auth import get_current_user
from ...models.user_model import User
from ...schemas.common_schema import ActionResult, ok
from ...schemas.user_schema import User as UserSchema

router = APIRouter()


@router.get("/me", response_model=ActionResult)
def read_current_user(user: User = Depends(get_current_user)):
    """The local record for the signed-in caller, created on first visit"""
    return ok(UserSchema.model_validate(user).model_dump(mode="json"))
