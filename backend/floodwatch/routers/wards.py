import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from floodwatch.crud import ward_query
from floodwatch.crud.common import bulk_message, dump_payload
from floodwatch.db import get_db
from floodwatch.models import Ward
from floodwatch.routers.common import get_or_404
from floodwatch.schemas import RiskCategoryName, WardBulkImport, WardCreate, WardUpdate
from floodwatch.scoring import RiskCategory, has_all_ward_inputs
from floodwatch.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wards", tags=["Wards"])


@router.get("")
def list_wards(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100),
               district: Optional[str] = None, province: Optional[str] = None,
               risk_level: Optional[RiskCategoryName] = None, ward_name: Optional[str] = None,
               risk_stale: Optional[bool] = None, sort: str = "flood_risk", order: str = "desc",
               db: Session = Depends(get_db)):
    wards, pagination = ward_query.list_wards(db, page, limit, district, province, risk_level, ward_name,
                                              risk_stale, sort, order)
    return {"success": True, "wards": [w.to_dict() for w in wards], "pagination": pagination}


@router.get("/stats")
def ward_stats(db: Session = Depends(get_db)):
    statistics, distribution = ward_query.ward_statistics(db)
    return {"success": True, "statistics": statistics, "riskDistribution": distribution}


@router.get("/nearby")
def wards_nearby(lat: float = Query(..., ge=-90, le=90), lng: float = Query(..., ge=-180, le=180),
                 radius_km: float = Query(5, gt=0, le=100),
                 db: Session = Depends(get_db)):
    wards = ward_query.get_wards_nearby(db, lat, lng, radius_km)
    return {"success": True, "wards": wards, "count": len(wards)}


@router.get("/risk/{level}")
def wards_by_risk_level(level: str, db: Session = Depends(get_db)):
    if level not in {c.value for c in RiskCategory}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Invalid risk level. Must be: Very Low, Low, Medium, High, Very High")
    wards = ward_query.wards_by_risk_level(db, level)
    return {"success": True, "count": len(wards), "wards": [w.to_dict() for w in wards]}


@router.get("/name/{name}")
def ward_by_name(name: str, db: Session = Depends(get_db)):
    ward = ward_query.get_ward_by_name(db, name)
    if ward is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ward not found")
    return {"success": True, "ward": ward.to_dict()}


@router.get("/{ward_id}")
def get_ward(ward_id: int, db: Session = Depends(get_db)):
    ward = get_or_404(db, Ward, ward_id, "Ward not found")
    return {"success": True, "ward": ward.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_ward(payload: WardCreate, db: Session = Depends(get_db)):
    if ward_query.name_taken(db, payload.ward_name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ward with this name already exists")
    ward = ward_query.build_ward(payload)
    db.add(ward)
    db.commit()
    db.refresh(ward)
    logger.info(f"Ward {ward.ward_name} created (id={ward.id})")
    return {"success": True, "message": "Ward created successfully", "ward": ward.to_dict()}


@router.post("/bulk-import", dependencies=[Depends(require_admin)])
def bulk_import_wards(payload: WardBulkImport, db: Session = Depends(get_db)):
    results = ward_query.bulk_import_wards(db, payload.wards)
    db.commit()
    return {"success": True, "message": bulk_message(results), "results": results}


@router.put("/{ward_id}", dependencies=[Depends(require_admin)])
def update_ward(ward_id: int, payload: WardUpdate, db: Session = Depends(get_db)):
    ward = get_or_404(db, Ward, ward_id, "Ward not found")
    data = dump_payload(payload, partial=True)
    if data.get("ward_name") and ward_query.name_taken(db, data["ward_name"], exclude_id=ward.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ward with this name already exists")

    recalculated = ward_query.update_ward(ward, data)
    db.commit()
    db.refresh(ward)
    message = "Ward updated successfully with risk recalculation" if recalculated else "Ward updated successfully"
    return {"success": True, "message": message, "ward": ward.to_dict()}


@router.delete("/{ward_id}", dependencies=[Depends(require_admin)])
def delete_ward(ward_id: int, db: Session = Depends(get_db)):
    ward = get_or_404(db, Ward, ward_id, "Ward not found")
    ward_query.soft_delete_ward(ward)
    db.commit()
    logger.info(f"Ward {ward_id} deactivated")
    return {"success": True, "message": "Ward deleted successfully"}


@router.post("/{ward_id}/calculate-risk", dependencies=[Depends(require_admin)])
def calculate_ward_risk(ward_id: int, db: Session = Depends(get_db)):
    ward = get_or_404(db, Ward, ward_id, "Ward not found")
    if not has_all_ward_inputs(ward_query.ward_inputs(ward)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Ward must have all risk parameters to calculate flood risk")
    ward_query.apply_ward_scores(ward)
    db.commit()
    db.refresh(ward)
    return {"success": True, "message": "Flood risk calculated successfully", "ward": ward.to_dict()}
