import logging
from datetime import timedelta

from sqlalchemy import or_

from floodwatch.crud.common import apply_sort, paginate
from floodwatch.models import User, utcnow
from floodwatch.security import hash_password

logger = logging.getLogger(__name__)

USER_SORT_FIELDS = {"created_at", "username", "email", "role", "last_login"}


def get_user_by_email(session, email):
    return session.query(User).filter(User.email == email.lower()).first()


def get_user_by_username(session, username):
    return session.query(User).filter(User.username == username).first()


def email_or_username_taken(session, email, username):
    return (session.query(User.id)
            .filter(or_(User.email == email.lower(), User.username == username))
            .first()) is not None


def create_user(session, username, email, password, role="user", **profile):
    user = User(
        username=username,
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
        **{k: v for k, v in profile.items() if v is not None},
    )
    session.add(user)
    session.flush()
    logger.info(f"Created {role} account {username} (id={user.id})")
    return user


def list_users(session, page=1, limit=10, role=None, is_active=None, search=None, sort="created_at",
               order="desc"):
    query = session.query(User)
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.username.ilike(pattern), User.email.ilike(pattern),
                                 User.full_name.ilike(pattern)))
    query = apply_sort(query, User, sort, order, USER_SORT_FIELDS, "created_at")
    return paginate(query, page, limit)


def user_stats(session, now=None):
    since = (now or utcnow()) - timedelta(days=30)
    return {
        "total_users": session.query(User).count(),
        "active_users": session.query(User).filter(User.is_active.is_(True)).count(),
        "admin_users": session.query(User).filter(User.role == "admin").count(),
        "recent_users": session.query(User).filter(User.created_at >= since).count(),
    }


def seed_admin(session, username, email, password):
    """Create the default admin once; returns the new user or None if one exists."""
    if session.query(User.id).filter(User.role == "admin").first() is not None:
        return None
    if email_or_username_taken(session, email, username):
        logger.warning(f"Cannot seed admin: {username} / {email} already registered")
        return None
    user = create_user(session, username, email, password, role="admin", full_name="Administrator")
    session.commit()
    return user
