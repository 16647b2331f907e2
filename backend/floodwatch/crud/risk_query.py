import logging
from datetime import timedelta

from pydantic import ValidationError
from sqlalchemy import func

from floodwatch.crud.common import apply_date_range, bulk_results, dump_payload, paginate
from floodwatch.errors import format_validation_errors
from floodwatch.models import RiskIndexData, Ward, utcnow
from floodwatch.schemas import RiskIndexCreate
from floodwatch.scoring import pillar_score, score_components, score_pillars, summarize_trend

logger = logging.getLogger(__name__)

PILLARS = ("exposure", "susceptibility", "resilience")


def list_risk(session, page=1, limit=20, ward_id=None, risk_category=None, date_from=None, date_to=None):
    query = session.query(RiskIndexData)
    if ward_id is not None:
        query = query.filter(RiskIndexData.ward_id == ward_id)
    if risk_category:
        query = query.filter(RiskIndexData.risk_category == risk_category)
    query = apply_date_range(query, RiskIndexData.date, date_from, date_to)
    query = query.order_by(RiskIndexData.date.desc(), RiskIndexData.risk_index.desc())
    return paginate(query, page, limit)


def find_risk(session, ward_id, date):
    return (session.query(RiskIndexData)
            .filter(RiskIndexData.ward_id == ward_id, RiskIndexData.date == date)
            .first())


def _apply_assessment(record, assessment):
    record.exposure = assessment.exposure
    record.susceptibility = assessment.susceptibility
    record.resilience = assessment.resilience
    record.risk_index = assessment.score
    record.risk_category = assessment.category.value


def build_risk_record(payload: RiskIndexCreate):
    """New snapshot; a pillar missing from the body is scored from its components."""
    data = dump_payload(payload)
    pillars = [
        data[name] if data.get(name) is not None else pillar_score(data.get(f"{name}_components"))
        for name in PILLARS
    ]
    record = RiskIndexData(**data)
    _apply_assessment(record, score_pillars(*pillars))
    return record


def update_risk_record(record, data):
    """Apply a partial update; the composite follows any pillar given in the body."""
    for key in ("ward_id", "date"):
        if key in data and data[key] is None:
            del data[key]
    for key, value in data.items():
        setattr(record, key, value)
    if any(name in data for name in PILLARS):
        _apply_assessment(record, score_pillars(record.exposure, record.susceptibility, record.resilience))


def recalculate(record):
    assessment = score_components(record.exposure_components, record.susceptibility_components,
                                  record.resilience_components)
    _apply_assessment(record, assessment)
    logger.info(f"Risk record {record.id} recalculated: {assessment.score:.2f} ({assessment.category.value})")
    return assessment


def risk_history(session, ward_id, limit=30):
    """The most recent ``limit`` snapshots of a ward, oldest first."""
    records = (session.query(RiskIndexData)
               .filter(RiskIndexData.ward_id == ward_id)
               .order_by(RiskIndexData.date.desc())
               .limit(limit)
               .all())
    return list(reversed(records))


def current_risk_levels(session):
    latest = (session.query(RiskIndexData.ward_id, func.max(RiskIndexData.date).label("latest_date"))
              .group_by(RiskIndexData.ward_id)
              .subquery())
    rows = (session.query(RiskIndexData, Ward.ward_name)
            .join(latest, (RiskIndexData.ward_id == latest.c.ward_id) & (RiskIndexData.date == latest.c.latest_date))
            .join(Ward, Ward.id == RiskIndexData.ward_id)
            .filter(Ward.is_active.is_(True))
            .order_by(RiskIndexData.risk_index.desc())
            .all())
    return [
        {
            "ward_id": record.ward_id,
            "ward_name": ward_name,
            "risk_index": record.risk_index,
            "risk_category": record.risk_category,
            "date": record.date.isoformat(),
        }
        for record, ward_name in rows
    ]


def risk_trend(session, ward_id, days=30, now=None):
    since = (now or utcnow()) - timedelta(days=days)
    records = (session.query(RiskIndexData)
               .filter(RiskIndexData.ward_id == ward_id, RiskIndexData.date >= since)
               .order_by(RiskIndexData.date.asc())
               .all())
    return summarize_trend(
        {
            "date": r.date.isoformat(),
            "risk_index": r.risk_index,
            "risk_category": r.risk_category,
            "exposure": r.exposure,
            "susceptibility": r.susceptibility,
            "resilience": r.resilience,
        }
        for r in records
    )


def _resolve_ward(session, item):
    name = item.get("ward_name")
    if name:
        return session.query(Ward).filter(Ward.ward_name == name).first()
    try:
        ward_id = int(item.get("ward_id"))
    except (TypeError, ValueError):
        return None
    return session.get(Ward, ward_id)


def bulk_import_risk(session, items):
    results = bulk_results()
    for item in items:
        label = item.get("ward_name") or item.get("ward_id") or "Unknown"
        ward = _resolve_ward(session, item)
        if ward is None:
            results["failed"].append({"ward": label, "error": "Ward not found"})
            continue

        body = {k: v for k, v in item.items() if k != "ward_name"}
        body["ward_id"] = ward.id
        try:
            payload = RiskIndexCreate.model_validate(body)
        except ValidationError as e:
            results["failed"].append({"ward": label, "error": "; ".join(format_validation_errors(e.errors()))})
            continue

        if find_risk(session, ward.id, payload.date) is not None:
            results["duplicates"].append({"ward": ward.ward_name, "date": payload.date.isoformat(),
                                          "reason": "Risk data for this ward and date already exists"})
            continue

        record = build_risk_record(payload)
        session.add(record)
        session.flush()
        results["successful"].append({"id": record.id, "ward": ward.ward_name,
                                      "risk_index": record.risk_index})
    return results
