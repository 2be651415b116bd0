# backend/autora/api/v1/settings.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from ...core.auth import get_current_user, require_admin
from ...core.database import get_db
from ...models.dealership_model import WorkingHour
from ...models.user_model import User
from ...schemas.common_schema import ActionResult, ok
from ...schemas.dealership_schema import WorkingHoursUpdate
from ...schemas.user_schema import RoleUpdate, User as UserSchema
from ...utils.dealership import get_or_create_dealership
from ...utils.helpers import serialize_dealership

router = APIRouter()


@router.get("/dealership", response_model=ActionResult)
def get_dealership_info(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Get the dealership profile with its working hours"""
    try:
        dealership = get_or_create_dealership(db)
    except Exception as e:
        logging.error(f"Failed to load dealership: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Database error: {e}")
    return ok(serialize_dealership(dealership))


@router.put("/working-hours", response_model=ActionResult)
def save_working_hours(
    update: WorkingHoursUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Replace the opening hours of every supplied day"""
    dealership = get_or_create_dealership(db)
    existing = {hour.day_of_week: hour for hour in dealership.working_hours}

    for item in update.working_hours:
        hour = existing.get(item.day_of_week)
        if hour is None:
            hour = WorkingHour(day_of_week=item.day_of_week)
            dealership.working_hours.append(hour)
        hour.open_time = item.open_time
        hour.close_time = item.close_time
        hour.is_open = item.is_open

    try:
        db.commit()
        db.refresh(dealership)
        logging.info(f"Working hours updated by admin {admin.id}")
        return ok(serialize_dealership(dealership), "Working hours saved successfully")
    except Exception as e:
        logging.error(f"Failed to save working hours: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {e}")


@router.get("/users", response_model=ActionResult)
def get_users(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Get all users, newest first"""
    users = db.query(User).order_by(User.created_at.desc()).all()
    return ok([UserSchema.model_validate(u).model_dump(mode="json") for u in users])


@router.patch("/users/{user_id}/role", response_model=ActionResult)
def update_user_role(
    user_id: str,
    update: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Promote a user to ADMIN or demote them to USER"""
    db_user = db.query(User).filter(User.id == user_id).first()

    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")

    db_user.role = update.role

    try:
        db.commit()
        db.refresh(db_user)
        logging.info(f"User {user_id} role set to {update.role.value} by admin {admin.id}")
        return ok(UserSchema.model_validate(db_user).model_dump(mode="json"), "User role updated successfully")
    except Exception as e:
        logging.error(f"Failed to update user role: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {e}")
