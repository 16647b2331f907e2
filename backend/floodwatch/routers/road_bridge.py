from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from floodwatch.crud import road_bridge_query
from floodwatch.crud.common import dump_payload, mark_ward_stale
from floodwatch.db import get_db
from floodwatch.models import RoadBridgeData
from floodwatch.routers.common import get_or_404, require_ward, ward_not_found
from floodwatch.schemas import Condition, RoadBridgeCreate, RoadBridgeUpdate
from floodwatch.security import require_admin

router = APIRouter(prefix="/api/road-bridge", tags=["Roads and bridges"])

NOT_FOUND = "Road/bridge data not found"


@router.get("")
def list_road_bridges(page: int = Query(1, ge=1), limit: int = Query(20, ge=1, le=100),
                      ward_id: Optional[int] = None, type: Optional[str] = None,
                      condition: Optional[Condition] = None, criticality_level: Optional[str] = None,
                      db: Session = Depends(get_db)):
    items, pagination = road_bridge_query.list_road_bridges(db, page, limit, ward_id, type, condition,
                                                            criticality_level)
    return {"success": True, "roadBridgeData": [i.to_dict() for i in items], "pagination": pagination}


@router.get("/high-risk")
def high_risk(db: Session = Depends(get_db)):
    items = road_bridge_query.high_risk(db)
    return {"success": True, "highRiskInfrastructure": [i.to_dict() for i in items], "count": len(items)}


@router.get("/inspection-needed")
def inspection_needed(db: Session = Depends(get_db)):
    items = road_bridge_query.inspection_needed(db)
    return {"success": True, "inspectionNeeded": [i.to_dict() for i in items], "count": len(items)}


@router.get("/ward/{ward_id}")
def road_bridges_for_ward(ward_id: int, db: Session = Depends(get_db)):
    ward = ward_not_found(db, ward_id)
    items = road_bridge_query.road_bridges_for_ward(db, ward_id)
    return {
        "success": True,
        "ward": ward.summary(),
        "roadBridgeData": [i.to_dict(include_ward=False) for i in items],
        "count": len(items),
    }


@router.get("/{item_id}")
def get_road_bridge(item_id: int, db: Session = Depends(get_db)):
    item = get_or_404(db, RoadBridgeData, item_id, NOT_FOUND)
    return {"success": True, "roadBridge": item.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_road_bridge(payload: RoadBridgeCreate, db: Session = Depends(get_db)):
    require_ward(db, payload.ward_id)
    item = road_bridge_query.build_road_bridge(payload)
    db.add(item)
    mark_ward_stale(db, payload.ward_id)
    db.commit()
    db.refresh(item)
    return {"success": True, "message": "Road/bridge data created successfully", "roadBridge": item.to_dict()}


@router.put("/{item_id}", dependencies=[Depends(require_admin)])
def update_road_bridge(item_id: int, payload: RoadBridgeUpdate, db: Session = Depends(get_db)):
    item = get_or_404(db, RoadBridgeData, item_id, NOT_FOUND)
    data = dump_payload(payload, partial=True)
    if data.get("ward_id") is not None:
        require_ward(db, data["ward_id"])
    previous_ward = item.ward_id
    road_bridge_query.update_road_bridge(item, data)
    mark_ward_stale(db, previous_ward, item.ward_id)
    db.commit()
    db.refresh(item)
    return {"success": True, "message": "Road/bridge data updated successfully", "roadBridge": item.to_dict()}


@router.delete("/{item_id}", dependencies=[Depends(require_admin)])
def delete_road_bridge(item_id: int, db: Session = Depends(get_db)):
    item = get_or_404(db, RoadBridgeData, item_id, NOT_FOUND)
    mark_ward_stale(db, item.ward_id)
    db.delete(item)
    db.commit()
    return {"success": True, "message": "Road/bridge data deleted successfully"}
