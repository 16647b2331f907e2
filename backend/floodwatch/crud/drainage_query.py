from collections import Counter

from floodwatch.crud.common import apply_sort, dump_payload, paginate
from floodwatch.models import DrainageData, utcnow

DRAINAGE_SORT_FIELDS = {"condition_score", "name", "type", "efficiency_percentage", "next_maintenance_date",
                        "created_at"}


def list_drainage(session, page=1, limit=20, ward_id=None, type=None, condition=None, status="operational",
                  sort="condition_score", order="asc"):
    query = session.query(DrainageData)
    if status:
        query = query.filter(DrainageData.status == status)
    if ward_id is not None:
        query = query.filter(DrainageData.ward_id == ward_id)
    if type:
        query = query.filter(DrainageData.type == type)
    if condition:
        query = query.filter(DrainageData.condition == condition)
    query = apply_sort(query, DrainageData, sort, order, DRAINAGE_SORT_FIELDS, "condition_score")
    return paginate(query, page, limit)


def drainage_for_ward(session, ward_id):
    return (session.query(DrainageData)
            .filter(DrainageData.ward_id == ward_id, DrainageData.status == "operational")
            .order_by(DrainageData.condition_score.asc())
            .all())


def build_drainage(payload):
    return DrainageData(**dump_payload(payload))


def update_drainage(record, data):
    for key in ("ward_id", "name"):
        if key in data and data[key] is None:
            del data[key]
    for key, value in data.items():
        setattr(record, key, value)


def drainage_stats(session, ward_id=None):
    query = session.query(DrainageData).filter(DrainageData.status == "operational")
    if ward_id is not None:
        query = query.filter(DrainageData.ward_id == ward_id)
    systems = query.all()

    efficiencies = [s.efficiency_percentage for s in systems if s.efficiency_percentage is not None]
    return {
        "total_systems": len(systems),
        "avg_efficiency": sum(efficiencies) / len(efficiencies) if efficiencies else 0,
        "total_length": sum(s.length or 0 for s in systems),
        "type_distribution": dict(Counter(s.type for s in systems)),
        "condition_distribution": dict(Counter(s.condition for s in systems)),
    }


def maintenance_needed(session, now=None):
    now = now or utcnow()
    return (session.query(DrainageData)
            .filter(DrainageData.next_maintenance_date <= now, DrainageData.status == "operational")
            .order_by(DrainageData.next_maintenance_date.asc())
            .all())
