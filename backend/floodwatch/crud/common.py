import logging
import math

from sqlalchemy import asc, desc

from floodwatch.models import Ward

logger = logging.getLogger(__name__)


def paginate(query, page, limit):
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
    return items, pagination


def apply_sort(query, model, sort, order, allowed, default):
    column_name = sort if sort in allowed else default
    column = getattr(model, column_name)
    return query.order_by(asc(column) if order == "asc" else desc(column))


def apply_date_range(query, column, date_from=None, date_to=None):
    if date_from is not None:
        query = query.filter(column >= date_from)
    if date_to is not None:
        query = query.filter(column <= date_to)
    return query


def dump_payload(payload, partial=False):
    """Column values from a request model.

    Top-level datetimes stay datetimes for DateTime columns; nested objects and
    lists are dumped in JSON mode for JSON columns.
    """
    options = {"exclude_unset": True} if partial else {"exclude_none": True}
    data = payload.model_dump(**options)
    json_data = payload.model_dump(mode="json", **options)
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            data[key] = json_data[key]
    return data


def mark_ward_stale(session, *ward_ids):
    """Flag wards whose observational data changed since their last scoring."""
    for ward_id in {w for w in ward_ids if w is not None}:
        ward = session.get(Ward, ward_id)
        if ward is not None and not ward.risk_stale:
            ward.risk_stale = True
            logger.info(f"Ward {ward_id} marked for risk recalculation")


def bulk_results():
    return {"successful": [], "failed": [], "duplicates": []}


def bulk_message(results):
    return (f"Bulk import completed. {len(results['successful'])} successful, "
            f"{len(results['failed'])} failed, {len(results['duplicates'])} duplicates")
