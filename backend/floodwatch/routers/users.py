import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from floodwatch.crud import user_query
from floodwatch.db import get_db
from floodwatch.models import User, utcnow
from floodwatch.routers.common import get_or_404
from floodwatch.schemas import AdminUserUpdate, ChangePasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest
from floodwatch.security import create_access_token, get_current_user, hash_password, require_admin, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _bad_request(message):
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _register(db, payload, role):
    existing = (user_query.get_user_by_email(db, payload.email)
                or user_query.get_user_by_username(db, payload.username))
    if existing is not None:
        taken = "Email already registered" if existing.email == payload.email.lower() else "Username already taken"
        raise _bad_request(taken)
    return user_query.create_user(db, payload.username, payload.email, payload.password, role=role,
                                  full_name=payload.full_name, phone=payload.phone, address=payload.address)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    user = _register(db, payload, "user")
    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    return {"success": True, "message": "User registered successfully",
            "token": create_access_token(user.id), "user": user.to_dict()}


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise _bad_request("Email and password are required")
    user = user_query.get_user_by_email(db, payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")

    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.username} logged in")
    return {"success": True, "message": "Login successful",
            "token": create_access_token(user.id), "user": user.to_dict()}


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return {"success": True, "user": current_user.to_dict()}


@router.put("/profile")
def update_profile(payload: ProfileUpdate, current_user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    data = payload.model_dump(exclude_unset=True)
    email = data.pop("email", None)
    if email and email.lower() != current_user.email:
        existing = user_query.get_user_by_email(db, email)
        if existing is not None and existing.id != current_user.id:
            raise _bad_request("Email already registered")
        current_user.email = email.lower()
    for key, value in data.items():
        setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)
    return {"success": True, "message": "Profile updated successfully", "user": current_user.to_dict()}


@router.put("/change-password")
def change_password(payload: ChangePasswordRequest, current_user: User = Depends(get_current_user),
                    db: Session = Depends(get_db)):
    if not verify_password(payload.current_password, current_user.password_hash):
        raise _bad_request("Current password is incorrect")
    current_user.password_hash = hash_password(payload.new_password)
    db.commit()
    return {"success": True, "message": "Password changed successfully"}


@router.post("/create-admin", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_admin(payload: RegisterRequest, db: Session = Depends(get_db)):
    user = _register(db, payload, "admin")
    db.commit()
    db.refresh(user)
    return {"success": True, "message": "Admin user created successfully", "user": user.to_dict()}


@router.get("", dependencies=[Depends(require_admin)])
def list_users(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100),
               role: Optional[Literal["user", "admin"]] = None, is_active: Optional[bool] = None,
               search: Optional[str] = None, sort: str = "created_at", order: str = "desc",
               db: Session = Depends(get_db)):
    users, pagination = user_query.list_users(db, page, limit, role, is_active, search, sort, order)
    return {"success": True, "users": [u.to_dict() for u in users], "pagination": pagination}


@router.get("/stats", dependencies=[Depends(require_admin)])
def user_stats(db: Session = Depends(get_db)):
    return {"success": True, "stats": user_query.user_stats(db)}


@router.get("/{user_id}", dependencies=[Depends(require_admin)])
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = get_or_404(db, User, user_id, "User not found")
    return {"success": True, "user": user.to_dict()}


@router.put("/{user_id}", dependencies=[Depends(require_admin)])
def update_user(user_id: int, payload: AdminUserUpdate, db: Session = Depends(get_db)):
    user = get_or_404(db, User, user_id, "User not found")
    for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return {"success": True, "message": "User updated successfully", "user": user.to_dict()}


@router.delete("/{user_id}")
def delete_user(user_id: int, current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    user = get_or_404(db, User, user_id, "User not found")
    if user.id == current_user.id:
        raise _bad_request("Cannot delete your own account")
    db.delete(user)
    db.commit()
    logger.info(f"User {user_id} deleted by {current_user.username}")
    return {"success": True, "message": "User deleted successfully"}
