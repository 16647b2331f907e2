from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from floodwatch.crud import drainage_query
from floodwatch.crud.common import dump_payload, mark_ward_stale
from floodwatch.db import get_db
from floodwatch.models import DrainageData
from floodwatch.routers.common import get_or_404, require_ward, ward_not_found
from floodwatch.schemas import Condition, DrainageCreate, DrainageUpdate
from floodwatch.security import require_admin

router = APIRouter(prefix="/api/drainage", tags=["Drainage"])

NOT_FOUND = "Drainage data not found"


@router.get("")
def list_drainage(page: int = Query(1, ge=1), limit: int = Query(20, ge=1, le=100),
                  ward_id: Optional[int] = None, type: Optional[str] = None,
                  condition: Optional[Condition] = None, sort: str = "condition_score", order: str = "asc",
                  db: Session = Depends(get_db)):
    systems, pagination = drainage_query.list_drainage(db, page, limit, ward_id, type, condition,
                                                       sort=sort, order=order)
    return {"success": True, "drainageData": [s.to_dict() for s in systems], "pagination": pagination}


@router.get("/stats")
def drainage_stats(ward_id: Optional[int] = None, db: Session = Depends(get_db)):
    return {"success": True, "statistics": drainage_query.drainage_stats(db, ward_id)}


@router.get("/maintenance-needed")
def maintenance_needed(db: Session = Depends(get_db)):
    systems = drainage_query.maintenance_needed(db)
    return {"success": True, "maintenanceNeeded": [s.to_dict() for s in systems], "count": len(systems)}


@router.get("/ward/{ward_id}")
def drainage_for_ward(ward_id: int, db: Session = Depends(get_db)):
    ward = ward_not_found(db, ward_id)
    systems = drainage_query.drainage_for_ward(db, ward_id)
    return {
        "success": True,
        "ward": ward.summary(),
        "drainageData": [s.to_dict(include_ward=False) for s in systems],
        "count": len(systems),
    }


@router.get("/{drainage_id}")
def get_drainage(drainage_id: int, db: Session = Depends(get_db)):
    system = get_or_404(db, DrainageData, drainage_id, NOT_FOUND)
    return {"success": True, "drainage": system.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_drainage(payload: DrainageCreate, db: Session = Depends(get_db)):
    require_ward(db, payload.ward_id)
    system = drainage_query.build_drainage(payload)
    db.add(system)
    mark_ward_stale(db, payload.ward_id)
    db.commit()
    db.refresh(system)
    return {"success": True, "message": "Drainage data created successfully", "drainage": system.to_dict()}


@router.put("/{drainage_id}", dependencies=[Depends(require_admin)])
def update_drainage(drainage_id: int, payload: DrainageUpdate, db: Session = Depends(get_db)):
    system = get_or_404(db, DrainageData, drainage_id, NOT_FOUND)
    data = dump_payload(payload, partial=True)
    if data.get("ward_id") is not None:
        require_ward(db, data["ward_id"])
    previous_ward = system.ward_id
    drainage_query.update_drainage(system, data)
    mark_ward_stale(db, previous_ward, system.ward_id)
    db.commit()
    db.refresh(system)
    return {"success": True, "message": "Drainage data updated successfully", "drainage": system.to_dict()}


@router.delete("/{drainage_id}", dependencies=[Depends(require_admin)])
def delete_drainage(drainage_id: int, db: Session = Depends(get_db)):
    system = get_or_404(db, DrainageData, drainage_id, NOT_FOUND)
    mark_ward_stale(db, system.ward_id)
    db.delete(system)
    db.commit()
    return {"success": True, "message": "Drainage data deleted successfully"}
