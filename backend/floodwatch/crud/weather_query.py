import logging
from datetime import timedelta

from pydantic import ValidationError
from sqlalchemy import func

from floodwatch.crud.common import apply_date_range, apply_sort, bulk_results, dump_payload, paginate
from floodwatch.errors import format_validation_errors
from floodwatch.models import Ward, WeatherData, utcnow
from floodwatch.schemas import WeatherCreate

logger = logging.getLogger(__name__)

WEATHER_SORT_FIELDS = {"date", "rainfall", "humidity", "temperature_current", "wind_speed", "recorded_at"}

# nested request objects -> flattened column prefix
NESTED_FIELDS = {"temperature": "temperature", "weather_condition": "condition"}


def flatten_weather(data):
    """Spread ``temperature`` and ``weather_condition`` onto their columns."""
    for key, prefix in NESTED_FIELDS.items():
        nested = data.pop(key, None)
        if nested is None:
            continue
        for name, value in nested.items():
            data[f"{prefix}_{name}"] = value
    return data


def list_weather(session, page=1, limit=50, ward_id=None, date_from=None, date_to=None, is_forecast=None,
                 sort="date", order="desc"):
    query = session.query(WeatherData)
    if ward_id is not None:
        query = query.filter(WeatherData.ward_id == ward_id)
    if is_forecast is not None:
        query = query.filter(WeatherData.is_forecast.is_(is_forecast))
    query = apply_date_range(query, WeatherData.date, date_from, date_to)
    query = apply_sort(query, WeatherData, sort, order, WEATHER_SORT_FIELDS, "date")
    return paginate(query, page, limit)


def weather_for_ward(session, ward_id, page=1, limit=30, date_from=None, date_to=None):
    query = session.query(WeatherData).filter(WeatherData.ward_id == ward_id)
    query = apply_date_range(query, WeatherData.date, date_from, date_to)
    return paginate(query.order_by(WeatherData.date.desc()), page, limit)


def find_weather(session, ward_id, date):
    return (session.query(WeatherData)
            .filter(WeatherData.ward_id == ward_id, WeatherData.date == date)
            .first())


def build_weather(payload: WeatherCreate):
    return WeatherData(**flatten_weather(dump_payload(payload)))


def update_weather(record, data):
    for key in ("ward_id", "date", "humidity", "rainfall"):
        if key in data and data[key] is None:
            del data[key]
    for key, value in flatten_weather(data).items():
        setattr(record, key, value)


def latest_weather(session):
    """Newest record of every active ward."""
    latest = (session.query(WeatherData.ward_id, func.max(WeatherData.date).label("latest_date"))
              .group_by(WeatherData.ward_id)
              .subquery())
    return (session.query(WeatherData)
            .join(latest, (WeatherData.ward_id == latest.c.ward_id) & (WeatherData.date == latest.c.latest_date))
            .join(Ward, Ward.id == WeatherData.ward_id)
            .filter(Ward.is_active.is_(True))
            .order_by(Ward.ward_name)
            .all())


def weather_stats(session, ward_id, days=30, now=None):
    since = (now or utcnow()) - timedelta(days=days)
    row = (session.query(
        func.count(WeatherData.id).label("count"),
        func.avg(WeatherData.temperature_current).label("avg_temperature"),
        func.max(WeatherData.temperature_max).label("max_temperature"),
        func.min(WeatherData.temperature_min).label("min_temperature"),
        func.avg(WeatherData.humidity).label("avg_humidity"),
        func.sum(WeatherData.rainfall).label("total_rainfall"),
        func.avg(WeatherData.rainfall).label("avg_rainfall"),
        func.max(WeatherData.rainfall).label("max_rainfall"),
    ).filter(WeatherData.ward_id == ward_id, WeatherData.date >= since).one())

    rainy_days = (session.query(func.count(WeatherData.id))
                  .filter(WeatherData.ward_id == ward_id, WeatherData.date >= since, WeatherData.rainfall > 0)
                  .scalar())
    return {
        "count": row.count or 0,
        "avg_temperature": row.avg_temperature or 0,
        "max_temperature": row.max_temperature or 0,
        "min_temperature": row.min_temperature or 0,
        "avg_humidity": row.avg_humidity or 0,
        "total_rainfall": row.total_rainfall or 0,
        "avg_rainfall": row.avg_rainfall or 0,
        "max_rainfall": row.max_rainfall or 0,
        "rainy_days": rainy_days or 0,
    }


def bulk_import_weather(session, items):
    """Insert weather rows; returns the results and the ids of wards that got new data."""
    results = bulk_results()
    touched = set()
    for item in items:
        label = item.get("ward_id", "Unknown")
        try:
            payload = WeatherCreate.model_validate(item)
        except ValidationError as e:
            results["failed"].append({"ward_id": label, "error": "; ".join(format_validation_errors(e.errors()))})
            continue

        ward = session.get(Ward, payload.ward_id)
        if ward is None:
            results["failed"].append({"ward_id": payload.ward_id, "error": "Ward not found"})
            continue

        if find_weather(session, ward.id, payload.date) is not None:
            results["duplicates"].append({"ward_id": ward.id, "date": payload.date.isoformat(),
                                          "reason": "Weather data for this ward and date already exists"})
            continue

        record = build_weather(payload)
        session.add(record)
        session.flush()
        touched.add(ward.id)
        results["successful"].append({"id": record.id, "ward_id": ward.id, "ward_name": ward.ward_name})
    logger.info(f"Weather bulk import touched {len(touched)} wards")
    return results, touched
