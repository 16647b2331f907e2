import logging
from collections import Counter

from pydantic import ValidationError
from sqlalchemy import func

from floodwatch import geo
from floodwatch.crud.common import apply_sort, bulk_results, dump_payload, paginate
from floodwatch.errors import format_validation_errors
from floodwatch.models import Ward, utcnow
from floodwatch.schemas import WardCreate
from floodwatch.scoring import WARD_RISK_INPUTS, RiskCategory, categorize, has_all_ward_inputs, score_ward

logger = logging.getLogger(__name__)

WARD_SORT_FIELDS = {"flood_risk", "ward_name", "district", "province", "population_density", "rainfall",
                    "population", "created_at", "last_updated"}


def list_wards(session, page=1, limit=10, district=None, province=None, risk_level=None, ward_name=None,
               risk_stale=None, sort="flood_risk", order="desc"):
    query = session.query(Ward).filter(Ward.is_active.is_(True))
    if district:
        query = query.filter(Ward.district == district)
    if province:
        query = query.filter(Ward.province == province)
    if risk_level:
        query = query.filter(Ward.risk_level == risk_level)
    if ward_name:
        query = query.filter(Ward.ward_name == ward_name)
    if risk_stale is not None:
        query = query.filter(Ward.risk_stale.is_(risk_stale))
    query = apply_sort(query, Ward, sort, order, WARD_SORT_FIELDS, "flood_risk")
    return paginate(query, page, limit)


def get_ward_by_name(session, name, active_only=True):
    query = session.query(Ward).filter(Ward.ward_name == name)
    if active_only:
        query = query.filter(Ward.is_active.is_(True))
    return query.first()


def name_taken(session, name, exclude_id=None):
    query = session.query(Ward.id).filter(Ward.ward_name == name)
    if exclude_id is not None:
        query = query.filter(Ward.id != exclude_id)
    return query.first() is not None


def ward_inputs(ward):
    return {name: getattr(ward, name) for name in WARD_RISK_INPUTS}


def apply_ward_scores(ward):
    """Score the ward from its raw inputs and copy the result onto the row."""
    assessment = score_ward(**ward_inputs(ward))
    ward.exposure = assessment.exposure
    ward.susceptibility = assessment.susceptibility
    ward.resilience = assessment.resilience
    ward.flood_risk = assessment.score
    ward.risk_level = assessment.category.value
    ward.risk_stale = False
    ward.last_updated = utcnow()
    logger.info(f"Ward {ward.ward_name}: flood_risk={assessment.score:.2f} ({assessment.category.value})")
    return assessment


def clear_ward_scores(ward):
    """Reset the derived fields to the unscored defaults."""
    ward.exposure = ward.susceptibility = ward.resilience = 0.0
    ward.flood_risk = 0.0
    ward.risk_level = categorize(0).value
    ward.risk_stale = False


def _fill_area(data):
    if data.get("area_km2") is None and data.get("geometry"):
        area = geo.area_km2(data["geometry"])
        if area > 0:
            data["area_km2"] = area


def build_ward(payload: WardCreate):
    data = dump_payload(payload)
    _fill_area(data)
    ward = Ward(**data)
    ward.risk_level = categorize(0).value
    if has_all_ward_inputs(data):
        apply_ward_scores(ward)
    return ward


def update_ward(ward, data):
    """Apply a partial update; returns True when the risk was recalculated."""
    for key in ("ward_name", "geometry"):
        if key in data and data[key] is None:
            del data[key]
    if "geometry" in data and "area_km2" not in data:
        _fill_area(data)
    for key, value in data.items():
        setattr(ward, key, value)
    ward.last_updated = utcnow()

    if not any(name in data for name in WARD_RISK_INPUTS):
        return False
    if has_all_ward_inputs(ward_inputs(ward)):
        apply_ward_scores(ward)
        return True
    clear_ward_scores(ward)
    logger.info(f"Ward {ward.ward_name}: risk inputs incomplete, scores cleared")
    return False


def soft_delete_ward(ward):
    ward.is_active = False
    ward.last_updated = utcnow()


def wards_by_risk_level(session, level):
    return (session.query(Ward)
            .filter(Ward.risk_level == level, Ward.is_active.is_(True))
            .order_by(Ward.flood_risk.desc())
            .all())


def ward_statistics(session):
    row = (session.query(
        func.count(Ward.id).label("total_wards"),
        func.avg(Ward.flood_risk).label("avg_risk"),
        func.max(Ward.flood_risk).label("max_risk"),
        func.avg(Ward.rainfall).label("avg_rainfall"),
        func.avg(Ward.low_elevation).label("avg_elevation"),
        func.avg(Ward.drainage_capacity).label("avg_drainage"),
        func.sum(Ward.population).label("total_population"),
    ).filter(Ward.is_active.is_(True)).one())

    total = row.total_wards or 0
    statistics = {
        "total_wards": total,
        "avg_risk": row.avg_risk or 0,
        "max_risk": row.max_risk or 0,
        "avg_rainfall": row.avg_rainfall or 0,
        "avg_elevation": row.avg_elevation or 0,
        "avg_drainage": row.avg_drainage or 0,
        "total_population": row.total_population or 0,
    }

    counts = Counter(level for (level,) in session.query(Ward.risk_level).filter(Ward.is_active.is_(True)))
    distribution = [
        {
            "label": category.value,
            "count": counts[category.value],
            "percentage": round(counts[category.value] / total * 100, 1) if total else 0,
        }
        for category in RiskCategory
        if counts[category.value]
    ]
    return statistics, distribution


def get_wards_nearby(session, lat, lng, radius_km):
    """Active wards whose centroid lies within radius_km of (lat, lng), nearest first."""
    wards = session.query(Ward).filter(Ward.is_active.is_(True)).all()
    logger.info(f"Checking {len(wards)} wards near lat={lat}, lng={lng}, radius={radius_km} km")

    results = []
    for w in wards:
        try:
            w_lat, w_lng = geo.centroid(w.geometry)
        except ValueError as e:
            logger.warning(f"Skipping ward {w.id} with unusable geometry: {e}")
            continue
        distance = geo.distance_km(lat, lng, w_lat, w_lng)
        if distance <= radius_km:
            results.append({
                "id": w.id,
                "ward_name": w.ward_name,
                "district": w.district,
                "latitude": w_lat,
                "longitude": w_lng,
                "distance_km": round(distance, 3),
                "flood_risk": w.flood_risk,
                "risk_level": w.risk_level,
                "risk_stale": w.risk_stale,
            })

    results.sort(key=lambda r: r["distance_km"])
    logger.info(f"Returning {len(results)} wards within {radius_km} km")
    return results


def bulk_import_wards(session, items):
    results = bulk_results()
    for item in items:
        name = item.get("ward_name") if isinstance(item, dict) else None
        try:
            payload = WardCreate.model_validate(item)
        except ValidationError as e:
            results["failed"].append({"ward_name": name or "Unknown", "error": "; ".join(format_validation_errors(e.errors()))})
            continue

        if name_taken(session, payload.ward_name):
            results["duplicates"].append({"ward_name": payload.ward_name, "reason": "Ward name already exists"})
            continue

        ward = build_ward(payload)
        session.add(ward)
        session.flush()
        results["successful"].append({"id": ward.id, "ward_name": ward.ward_name})
    return results
