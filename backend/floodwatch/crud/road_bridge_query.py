from sqlalchemy import case, or_

from floodwatch.crud.common import dump_payload, paginate
from floodwatch.models import CRITICALITY_RANK, RoadBridgeData, utcnow

HIGH_RISK_FLOOD_LEVEL = 7

criticality_rank = case(CRITICALITY_RANK, value=RoadBridgeData.criticality_level, else_=1)


def _by_priority(query):
    return query.order_by(criticality_rank.desc(), RoadBridgeData.flood_level.desc())


def list_road_bridges(session, page=1, limit=20, ward_id=None, type=None, condition=None,
                      criticality_level=None, status="operational"):
    query = session.query(RoadBridgeData)
    if status:
        query = query.filter(RoadBridgeData.status == status)
    if ward_id is not None:
        query = query.filter(RoadBridgeData.ward_id == ward_id)
    if type:
        query = query.filter(RoadBridgeData.type == type)
    if condition:
        query = query.filter(RoadBridgeData.condition == condition)
    if criticality_level:
        query = query.filter(RoadBridgeData.criticality_level == criticality_level)
    return paginate(_by_priority(query), page, limit)


def road_bridges_for_ward(session, ward_id):
    query = session.query(RoadBridgeData).filter(RoadBridgeData.ward_id == ward_id,
                                                 RoadBridgeData.status == "operational")
    return _by_priority(query).all()


def build_road_bridge(payload):
    return RoadBridgeData(**dump_payload(payload))


def update_road_bridge(record, data):
    for key in ("ward_id", "name", "flood_level"):
        if key in data and data[key] is None:
            del data[key]
    for key, value in data.items():
        setattr(record, key, value)


def high_risk(session):
    """Operational roads and bridges that are deep-flooding or in critical shape."""
    query = session.query(RoadBridgeData).filter(
        RoadBridgeData.status == "operational",
        or_(
            RoadBridgeData.flood_level >= HIGH_RISK_FLOOD_LEVEL,
            RoadBridgeData.condition == "critical",
            RoadBridgeData.criticality_level == "critical",
        ),
    )
    return _by_priority(query).all()


def inspection_needed(session, now=None):
    now = now or utcnow()
    return (session.query(RoadBridgeData)
            .filter(RoadBridgeData.next_inspection_date <= now, RoadBridgeData.status == "operational")
            .order_by(RoadBridgeData.next_inspection_date.asc())
            .all())
