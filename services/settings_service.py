# Platform settings access
# The stored document is merged over PLATFORM_DEFAULTS on every read.

import copy
from typing import Optional

from sqlalchemy.orm import Session

from config.platform_defaults import PLATFORM_DEFAULTS, PUBLIC_SETTING_KEYS
from database.models import PlatformSettings

SETTINGS_ROW_ID = 1


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_settings(db: Session) -> dict:
    row = db.query(PlatformSettings).filter(PlatformSettings.id == SETTINGS_ROW_ID).first()
    return _deep_merge(PLATFORM_DEFAULTS, row.data if row else {})


def get_public_settings(db: Session) -> dict:
    settings = get_settings(db)
    return {key: value for key, value in settings.items() if key in PUBLIC_SETTING_KEYS}


def update_settings(db: Session, changes: dict, updated_by: Optional[str] = None) -> dict:
    """Merge changes into the stored document. Unknown keys are ignored."""
    row = db.query(PlatformSettings).filter(PlatformSettings.id == SETTINGS_ROW_ID).first()
    if row is None:
        row = PlatformSettings(id=SETTINGS_ROW_ID, data={})
        db.add(row)

    known = {key: value for key, value in changes.items() if key in PLATFORM_DEFAULTS}
    # Reassign so the JSON column is flagged dirty
    row.data = _deep_merge(row.data or {}, known)
    row.updated_by = updated_by
    db.commit()
    return get_settings(db)
