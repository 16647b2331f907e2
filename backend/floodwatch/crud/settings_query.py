import copy
import logging
from collections import Counter

from floodwatch.models import UserSettings

logger = logging.getLogger(__name__)

THRESHOLD_ORDER = ("very_low", "low", "medium", "high", "very_high")

DEFAULT_SETTINGS = {
    "theme": "dark",
    "language": "vi",
    "dashboard": {
        "default_view": "dashboard",
        "refresh_interval": 300,
        "show_notifications": True,
    },
    "risk_thresholds": {"very_low": 2, "low": 4, "medium": 6, "high": 8, "very_high": 9},
    "notifications": {
        "email": {
            "enabled": True,
            "types": {"flood_alerts": True, "system_updates": True, "report_ready": True, "maintenance_due": True},
        },
        "browser": {
            "enabled": True,
            "types": {"flood_alerts": True, "system_updates": False, "report_ready": True, "maintenance_due": True},
        },
        "sms": {
            "enabled": False,
            "types": {"flood_alerts": True, "system_updates": False, "report_ready": False,
                      "maintenance_due": False},
        },
    },
    "privacy": {"share_analytics": False, "allow_data_collection": True, "public_profile": False},
    "accessibility": {"font_size": "medium", "high_contrast": False, "reduce_motion": False},
}

SECTIONS = ("dashboard", "risk_thresholds", "notifications", "privacy", "accessibility")


def default_settings():
    return copy.deepcopy(DEFAULT_SETTINGS)


def deep_merge(base, changes):
    merged = copy.deepcopy(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def thresholds_ascending(thresholds):
    values = [thresholds.get(name) for name in THRESHOLD_ORDER]
    if any(v is None for v in values):
        return False
    return all(a < b for a, b in zip(values, values[1:]))


def get_or_create_settings(session, user_id):
    settings = session.query(UserSettings).filter(UserSettings.user_id == user_id).first()
    if settings is None:
        settings = UserSettings(user_id=user_id, **default_settings())
        session.add(settings)
        session.flush()
        logger.info(f"Created default settings for user {user_id}")
    return settings


def update_settings(settings, changes):
    """Deep-merge ``changes`` into the stored settings.

    Raises ValueError when the merged risk thresholds are not strictly ascending.
    """
    merged = {key: changes[key] for key in ("theme", "language") if changes.get(key) is not None}
    for section in SECTIONS:
        if changes.get(section):
            merged[section] = deep_merge(getattr(settings, section) or {}, changes[section])

    if "risk_thresholds" in merged and not thresholds_ascending(merged["risk_thresholds"]):
        raise ValueError("Risk thresholds must be in ascending order")

    # JSON columns only notice reassignment, so every section gets a new dict
    for key, value in merged.items():
        setattr(settings, key, value)
    return settings


def reset_settings(settings):
    for key, value in default_settings().items():
        setattr(settings, key, value)
    return settings


def update_notifications(settings, channel, channel_settings):
    notifications = copy.deepcopy(settings.notifications or {})
    notifications[channel] = deep_merge(notifications.get(channel) or {}, channel_settings)
    settings.notifications = notifications
    return settings


def system_stats(session):
    rows = session.query(UserSettings).all()
    themes = Counter(s.theme for s in rows)
    languages = Counter(s.language for s in rows)
    return {
        "total_users": len(rows),
        "active_users": sum(1 for s in rows if (s.dashboard or {}).get("show_notifications")),
        "theme_stats": {theme: themes[theme] for theme in ("light", "dark", "auto")},
        "language_stats": {lang: languages[lang] for lang in ("vi", "en")},
        "notifications_enabled": sum(
            1 for s in rows
            if any((s.notifications or {}).get(ch, {}).get("enabled") for ch in ("email", "browser", "sms"))
        ),
    }
