import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from floodwatch.crud import risk_query
from floodwatch.crud.common import bulk_message, dump_payload
from floodwatch.db import get_db
from floodwatch.models import RiskIndexData, to_naive_utc
from floodwatch.routers.common import get_or_404, require_ward, ward_not_found
from floodwatch.schemas import RiskBulkImport, RiskCategoryName, RiskIndexCreate, RiskIndexUpdate
from floodwatch.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/risk", tags=["Risk index"])

NOT_FOUND = "Risk index data not found"


@router.get("")
def list_risk(page: int = Query(1, ge=1), limit: int = Query(20, ge=1, le=100),
              ward_id: Optional[int] = None, risk_category: Optional[RiskCategoryName] = None,
              date_from: Optional[datetime] = None, date_to: Optional[datetime] = None,
              db: Session = Depends(get_db)):
    records, pagination = risk_query.list_risk(db, page, limit, ward_id, risk_category,
                                               to_naive_utc(date_from), to_naive_utc(date_to))
    return {"success": True, "riskData": [r.to_dict() for r in records], "pagination": pagination}


@router.get("/current")
def current_risk_levels(db: Session = Depends(get_db)):
    levels = risk_query.current_risk_levels(db)
    return {"success": True, "currentRiskLevels": levels, "count": len(levels)}


@router.get("/ward/{ward_id}")
def risk_history(ward_id: int, limit: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)):
    ward = ward_not_found(db, ward_id)
    history = risk_query.risk_history(db, ward_id, limit)
    return {
        "success": True,
        "ward": ward.summary(),
        "riskHistory": [r.to_dict(include_ward=False) for r in history],
        "count": len(history),
    }


@router.get("/trend/{ward_id}")
def risk_trend(ward_id: int, days: int = Query(30, ge=1, le=3650), db: Session = Depends(get_db)):
    ward = ward_not_found(db, ward_id)
    trend = risk_query.risk_trend(db, ward_id, days)
    return {
        "success": True,
        "ward": ward.summary(),
        "trendAnalysis": {
            "avg_risk": trend.avg_risk,
            "max_risk": trend.max_risk,
            "min_risk": trend.min_risk,
            "count": trend.count,
            "data": trend.data,
        },
        "period": {"days": days},
    }


@router.get("/{risk_id}")
def get_risk(risk_id: int, db: Session = Depends(get_db)):
    record = get_or_404(db, RiskIndexData, risk_id, NOT_FOUND)
    return {"success": True, "riskData": record.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_risk(payload: RiskIndexCreate, db: Session = Depends(get_db)):
    require_ward(db, payload.ward_id)
    if risk_query.find_risk(db, payload.ward_id, payload.date) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Risk data for this ward and date already exists")
    record = risk_query.build_risk_record(payload)
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(f"Risk record {record.id} created for ward {record.ward_id}: {record.risk_index:.2f}")
    return {"success": True, "message": "Risk index data created successfully", "riskIndex": record.to_dict()}


@router.post("/bulk-import", dependencies=[Depends(require_admin)])
def bulk_import_risk(payload: RiskBulkImport, db: Session = Depends(get_db)):
    results = risk_query.bulk_import_risk(db, payload.riskData)
    db.commit()
    return {"success": True, "message": bulk_message(results), "results": results}


@router.put("/{risk_id}", dependencies=[Depends(require_admin)])
def update_risk(risk_id: int, payload: RiskIndexUpdate, db: Session = Depends(get_db)):
    record = get_or_404(db, RiskIndexData, risk_id, NOT_FOUND)
    data = dump_payload(payload, partial=True)
    if data.get("ward_id") is not None:
        require_ward(db, data["ward_id"])
    risk_query.update_risk_record(record, data)
    db.commit()
    db.refresh(record)
    return {"success": True, "message": "Risk index data updated successfully", "riskIndex": record.to_dict()}


@router.delete("/{risk_id}", dependencies=[Depends(require_admin)])
def delete_risk(risk_id: int, db: Session = Depends(get_db)):
    record = get_or_404(db, RiskIndexData, risk_id, NOT_FOUND)
    db.delete(record)
    db.commit()
    return {"success": True, "message": "Risk index data deleted successfully"}


@router.post("/{risk_id}/recalculate", dependencies=[Depends(require_admin)])
def recalculate_risk(risk_id: int, db: Session = Depends(get_db)):
    record = get_or_404(db, RiskIndexData, risk_id, NOT_FOUND)
    risk_query.recalculate(record)
    db.commit()
    db.refresh(record)
    return {"success": True, "message": "Risk index recalculated successfully", "riskData": record.to_dict()}
