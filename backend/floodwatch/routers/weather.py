from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from floodwatch.crud import weather_query
from floodwatch.crud.common import bulk_message, dump_payload, mark_ward_stale
from floodwatch.db import get_db
from floodwatch.models import WeatherData, to_naive_utc
from floodwatch.routers.common import get_or_404, require_ward, ward_not_found
from floodwatch.schemas import WeatherBulkImport, WeatherCreate, WeatherUpdate
from floodwatch.security import require_admin

router = APIRouter(prefix="/api/weather", tags=["Weather"])

NOT_FOUND = "Weather data not found"
DUPLICATE = "Weather data for this ward and date already exists"


@router.get("")
def list_weather(page: int = Query(1, ge=1), limit: int = Query(50, ge=1, le=100),
                 ward_id: Optional[int] = None, date_from: Optional[datetime] = None,
                 date_to: Optional[datetime] = None, is_forecast: Optional[bool] = None,
                 sort: str = "date", order: str = "desc", db: Session = Depends(get_db)):
    records, pagination = weather_query.list_weather(db, page, limit, ward_id, to_naive_utc(date_from),
                                                     to_naive_utc(date_to), is_forecast, sort, order)
    return {"success": True, "weatherData": [r.to_dict() for r in records], "pagination": pagination}


@router.get("/latest")
def latest_weather(db: Session = Depends(get_db)):
    records = weather_query.latest_weather(db)
    return {"success": True, "latestWeather": [r.to_dict() for r in records], "count": len(records)}


@router.get("/ward/{ward_id}")
def weather_for_ward(ward_id: int, page: int = Query(1, ge=1), limit: int = Query(30, ge=1, le=100),
                     date_from: Optional[datetime] = None, date_to: Optional[datetime] = None,
                     db: Session = Depends(get_db)):
    ward = ward_not_found(db, ward_id)
    records, pagination = weather_query.weather_for_ward(db, ward_id, page, limit, to_naive_utc(date_from),
                                                         to_naive_utc(date_to))
    return {
        "success": True,
        "ward": ward.summary(),
        "weatherData": [r.to_dict(include_ward=False) for r in records],
        "pagination": pagination,
    }


@router.get("/stats/{ward_id}")
def weather_stats(ward_id: int, days: int = Query(30, ge=1, le=3650), db: Session = Depends(get_db)):
    ward = ward_not_found(db, ward_id)
    return {
        "success": True,
        "ward": ward.summary(),
        "period": {"days": days},
        "statistics": weather_query.weather_stats(db, ward_id, days),
    }


@router.get("/{weather_id}")
def get_weather(weather_id: int, db: Session = Depends(get_db)):
    record = get_or_404(db, WeatherData, weather_id, NOT_FOUND)
    return {"success": True, "weather": record.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_weather(payload: WeatherCreate, db: Session = Depends(get_db)):
    require_ward(db, payload.ward_id)
    if weather_query.find_weather(db, payload.ward_id, payload.date) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE)
    record = weather_query.build_weather(payload)
    db.add(record)
    mark_ward_stale(db, payload.ward_id)
    db.commit()
    db.refresh(record)
    return {"success": True, "message": "Weather data created successfully", "weather": record.to_dict()}


@router.post("/bulk-import", dependencies=[Depends(require_admin)])
def bulk_import_weather(payload: WeatherBulkImport, db: Session = Depends(get_db)):
    results, touched = weather_query.bulk_import_weather(db, payload.weatherData)
    mark_ward_stale(db, *touched)
    db.commit()
    return {"success": True, "message": bulk_message(results), "results": results}


@router.put("/{weather_id}", dependencies=[Depends(require_admin)])
def update_weather(weather_id: int, payload: WeatherUpdate, db: Session = Depends(get_db)):
    record = get_or_404(db, WeatherData, weather_id, NOT_FOUND)
    data = dump_payload(payload, partial=True)
    if data.get("ward_id") is not None:
        require_ward(db, data["ward_id"])
    previous_ward = record.ward_id
    weather_query.update_weather(record, data)
    mark_ward_stale(db, previous_ward, record.ward_id)
    db.commit()
    db.refresh(record)
    return {"success": True, "message": "Weather data updated successfully", "weather": record.to_dict()}


@router.delete("/{weather_id}", dependencies=[Depends(require_admin)])
def delete_weather(weather_id: int, db: Session = Depends(get_db)):
    record = get_or_404(db, WeatherData, weather_id, NOT_FOUND)
    mark_ward_stale(db, record.ward_id)
    db.delete(record)
    db.commit()
    return {"success": True, "message": "Weather data deleted successfully"}
