from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from floodwatch.crud import settings_query
from floodwatch.db import get_db
from floodwatch.models import User
from floodwatch.schemas import NotificationUpdate, SettingsUpdate
from floodwatch.security import get_current_user, require_admin

router = APIRouter(prefix="/api/settings", tags=["Settings"])


@router.get("/defaults")
def get_defaults():
    return {"success": True, "defaults": settings_query.default_settings()}


@router.get("/stats", dependencies=[Depends(require_admin)])
def system_stats(db: Session = Depends(get_db)):
    return {"success": True, "systemStats": settings_query.system_stats(db)}


@router.get("")
def get_settings(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user_settings = settings_query.get_or_create_settings(db, current_user.id)
    db.commit()
    return {"success": True, "settings": user_settings.to_dict()}


@router.put("")
def update_settings(payload: SettingsUpdate, current_user: User = Depends(get_current_user),
                    db: Session = Depends(get_db)):
    user_settings = settings_query.get_or_create_settings(db, current_user.id)
    try:
        settings_query.update_settings(user_settings, payload.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    db.commit()
    db.refresh(user_settings)
    return {"success": True, "message": "Settings updated successfully", "settings": user_settings.to_dict()}


@router.post("/reset")
def reset_settings(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user_settings = settings_query.get_or_create_settings(db, current_user.id)
    settings_query.reset_settings(user_settings)
    db.commit()
    db.refresh(user_settings)
    return {"success": True, "message": "Settings reset to defaults", "settings": user_settings.to_dict()}


@router.put("/notifications")
def update_notifications(payload: NotificationUpdate, current_user: User = Depends(get_current_user),
                         db: Session = Depends(get_db)):
    user_settings = settings_query.get_or_create_settings(db, current_user.id)
    settings_query.update_notifications(user_settings, payload.type, payload.settings.model_dump(exclude_none=True))
    db.commit()
    db.refresh(user_settings)
    return {"success": True, "message": "Notification settings updated successfully",
            "settings": user_settings.to_dict()}
