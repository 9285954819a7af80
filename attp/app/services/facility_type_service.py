"""
Service cho danh mục loại hình cơ sở (facility_types).
"""

from __future__ import annotations

import logging
import uuid
from functools import partial
from typing import Any

from sqlalchemy.orm import Session

from ..core.auth import require_admin
from ..core.cache import FACILITY_TYPES_KEY, query_cache
from ..core.db import run_after_commit
from ..core.error_handler import ConflictError, NotFoundError, ValidationError
from ..core.request_utils import form_bool
from ..models.entities import FacilityType, Profile

logger = logging.getLogger(__name__)


def list_facility_types(db: Session, active_only: bool = False) -> list[FacilityType]:
    query = db.query(FacilityType)
    if active_only:
        return query.filter(FacilityType.is_active.is_(True)).order_by(FacilityType.name).all()
    return query.order_by(FacilityType.created_at.desc()).all()


def active_type_names(db: Session) -> list[str]:
    """Danh sách tên loại hình đang hoạt động (có cache)."""
    return query_cache.get_or_compute(
        FACILITY_TYPES_KEY + ("active-names",),
        lambda: [t.name for t in list_facility_types(db, active_only=True)],
    )


def _clean(data: dict[str, Any]) -> dict[str, Any]:
    name = str(data.get("name") or "").strip()
    if not name:
        raise ValidationError(
            "Vui lòng nhập tên loại hình", fields={"name": "Vui lòng nhập tên loại hình"}
        )
    return {
        "name": name,
        "description": (data.get("description") or "").strip() or None,
        "is_active": form_bool(data.get("is_active"), default=True),
    }


def _ensure_unique(db: Session, name: str, exclude_id: uuid.UUID | None = None) -> None:
    query = db.query(FacilityType).filter(FacilityType.name == name)
    if exclude_id is not None:
        query = query.filter(FacilityType.id != exclude_id)
    if query.first():
        raise ConflictError(f'Loại hình "{name}" đã tồn tại')


def create_facility_type(db: Session, actor: Profile, data: dict[str, Any]) -> FacilityType:
    require_admin(actor)
    values = _clean(data)
    _ensure_unique(db, values["name"])

    facility_type = FacilityType(**values)
    db.add(facility_type)
    db.flush()
    run_after_commit(db, partial(query_cache.invalidate, FACILITY_TYPES_KEY))
    logger.info("%s thêm loại hình %s", actor.username, facility_type.name)
    return facility_type


def update_facility_type(
    db: Session, actor: Profile, type_id: uuid.UUID, data: dict[str, Any]
) -> FacilityType:
    require_admin(actor)
    facility_type = db.get(FacilityType, type_id)
    if facility_type is None:
        raise NotFoundError("Loại hình không tồn tại")

    values = _clean(data)
    _ensure_unique(db, values["name"], exclude_id=facility_type.id)
    for key, value in values.items():
        setattr(facility_type, key, value)
    db.flush()
    run_after_commit(db, partial(query_cache.invalidate, FACILITY_TYPES_KEY))
    return facility_type


def delete_facility_type(db: Session, actor: Profile, type_id: uuid.UUID) -> None:
    require_admin(actor)
    facility_type = db.get(FacilityType, type_id)
    if facility_type is None:
        raise NotFoundError("Loại hình không tồn tại")
    db.delete(facility_type)
    db.flush()
    run_after_commit(db, partial(query_cache.invalidate, FACILITY_TYPES_KEY))
    logger.info("%s xoá loại hình %s", actor.username, facility_type.name)


def serialize_facility_type(facility_type: FacilityType) -> dict[str, Any]:
    return {
        "id": str(facility_type.id),
        "name": facility_type.name,
        "description": facility_type.description,
        "is_active": facility_type.is_active,
    }
