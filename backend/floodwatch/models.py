from datetime import datetime, timedelta, timezone

from sqlalchemy import (Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text,
                        UniqueConstraint)
from sqlalchemy.orm import declarative_base, relationship

from floodwatch.scoring import RISK_LABELS_VI, RiskCategory, risk_color

Base = declarative_base()

WIND_DIRECTIONS = ['N', 'NNE', 'NE', 'ENE', 'E', 'ESE', 'SE', 'SSE',
                   'S', 'SSW', 'SW', 'WSW', 'W', 'WNW', 'NW', 'NNW']

CRITICALITY_MULTIPLIER = {'low': 0.5, 'medium': 1, 'high': 1.5, 'critical': 2}
CRITICALITY_RANK = {'low': 0, 'medium': 1, 'high': 2, 'critical': 3}


def utcnow():
    # Naive UTC everywhere; SQLite drops tzinfo on the way back.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value):
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


def default_infrastructure_count():
    return {"roads": 0, "bridges": 0, "drainage_systems": 0}


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Ward(TimestampMixin, Base):
    __tablename__ = "wards"

    id = Column(Integer, primary_key=True)
    ward_name = Column(String(100), unique=True, nullable=False, index=True)
    district = Column(String(100), index=True)
    province = Column(String(100))
    geometry = Column(JSON, nullable=False)

    # raw risk inputs, None when not yet surveyed
    population_density = Column(Float)
    rainfall = Column(Float)
    low_elevation = Column(Float)
    urban_land = Column(Float)
    drainage_capacity = Column(Float)

    exposure = Column(Float, default=0.0)
    susceptibility = Column(Float, default=0.0)
    resilience = Column(Float, default=0.0)
    flood_risk = Column(Float, default=0.0, index=True)
    risk_level = Column(String(20), default=RiskCategory.VERY_LOW.value, index=True)

    area_km2 = Column(Float)
    population = Column(Integer, default=0)
    infrastructure_count = Column(JSON, default=default_infrastructure_count)

    is_active = Column(Boolean, default=True)
    risk_stale = Column(Boolean, default=False)
    last_updated = Column(DateTime, default=utcnow)

    risk_records = relationship("RiskIndexData", back_populates="ward", cascade="all, delete-orphan")
    weather_records = relationship("WeatherData", back_populates="ward", cascade="all, delete-orphan")
    drainage_systems = relationship("DrainageData", back_populates="ward", cascade="all, delete-orphan")
    road_bridges = relationship("RoadBridgeData", back_populates="ward", cascade="all, delete-orphan")

    def summary(self):
        return {"id": self.id, "ward_name": self.ward_name, "district": self.district}

    def to_dict(self):
        return {
            "id": self.id,
            "ward_name": self.ward_name,
            "district": self.district,
            "province": self.province,
            "geometry": self.geometry,
            "population_density": self.population_density,
            "rainfall": self.rainfall,
            "low_elevation": self.low_elevation,
            "urban_land": self.urban_land,
            "drainage_capacity": self.drainage_capacity,
            "exposure": self.exposure,
            "susceptibility": self.susceptibility,
            "resilience": self.resilience,
            "flood_risk": self.flood_risk,
            "risk_level": self.risk_level,
            "risk_level_formatted": RISK_LABELS_VI.get(self.risk_level, self.risk_level),
            "area_km2": self.area_km2,
            "population": self.population,
            "infrastructure_count": self.infrastructure_count,
            "is_active": self.is_active,
            "risk_stale": self.risk_stale,
            "last_updated": _iso(self.last_updated),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class RiskIndexData(TimestampMixin, Base):
    __tablename__ = "risk_index_data"
    __table_args__ = (UniqueConstraint("ward_id", "date", name="uq_risk_ward_date"),)

    id = Column(Integer, primary_key=True)
    ward_id = Column(Integer, ForeignKey("wards.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime, nullable=False, index=True)

    risk_index = Column(Float, nullable=False, index=True)
    exposure = Column(Float, nullable=False)
    susceptibility = Column(Float, nullable=False)
    resilience = Column(Float, nullable=False)

    exposure_components = Column(JSON, default=dict)
    susceptibility_components = Column(JSON, default=dict)
    resilience_components = Column(JSON, default=dict)

    risk_category = Column(String(20), nullable=False, index=True)
    risk_trend = Column(String(20), default="stable")
    compared_to_previous = Column(JSON)
    external_factors = Column(JSON)

    confidence_level = Column(Float, default=85)
    data_completeness = Column(Float, default=100)
    calculation_method = Column(String(20), default="automated")
    calculation_version = Column(String(20), default="1.0")
    input_data_sources = Column(JSON, default=list)

    validated = Column(Boolean, default=False)
    validated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    validated_date = Column(DateTime)
    review_notes = Column(String(1000))
    notes = Column(String(500))

    ward = relationship("Ward", back_populates="risk_records")

    def to_dict(self, include_ward=True):
        data = {
            "id": self.id,
            "ward_id": self.ward_id,
            "date": _iso(self.date),
            "risk_index": self.risk_index,
            "exposure": self.exposure,
            "susceptibility": self.susceptibility,
            "resilience": self.resilience,
            "exposure_components": self.exposure_components or {},
            "susceptibility_components": self.susceptibility_components or {},
            "resilience_components": self.resilience_components or {},
            "risk_category": self.risk_category,
            "risk_color": risk_color(self.risk_category),
            "risk_trend": self.risk_trend,
            "compared_to_previous": self.compared_to_previous,
            "external_factors": self.external_factors,
            "confidence_level": self.confidence_level,
            "data_completeness": self.data_completeness,
            "calculation_method": self.calculation_method,
            "calculation_version": self.calculation_version,
            "input_data_sources": self.input_data_sources or [],
            "validated": self.validated,
            "validated_by": self.validated_by,
            "validated_date": _iso(self.validated_date),
            "review_notes": self.review_notes,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_ward and self.ward is not None:
            data["ward"] = self.ward.summary()
        return data


class WeatherData(TimestampMixin, Base):
    __tablename__ = "weather_data"
    __table_args__ = (UniqueConstraint("ward_id", "date", name="uq_weather_ward_date"),)

    id = Column(Integer, primary_key=True)
    ward_id = Column(Integer, ForeignKey("wards.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime, nullable=False, index=True)

    temperature_current = Column(Float)
    temperature_min = Column(Float)
    temperature_max = Column(Float)
    temperature_feels_like = Column(Float)
    humidity = Column(Float, nullable=False)
    rainfall = Column(Float, nullable=False, default=0.0, index=True)
    wind_speed = Column(Float, default=0.0)
    wind_direction = Column(Float)
    wind_gust = Column(Float)
    pressure = Column(Float)
    visibility = Column(Float)
    condition_main = Column(String(20), default="Clear")
    condition_description = Column(String(200))
    condition_icon = Column(String(10))
    uv_index = Column(Float)
    aqi = Column(Float)

    data_source = Column(String(20), default="weather_api")
    source_id = Column(String(100))
    is_forecast = Column(Boolean, default=False)
    confidence_level = Column(Float, default=100)
    recorded_at = Column(DateTime, default=utcnow)

    ward = relationship("Ward", back_populates="weather_records")

    @property
    def wind_direction_cardinal(self):
        if not self.wind_direction:
            return None
        return WIND_DIRECTIONS[round(self.wind_direction / 22.5) % 16]

    def is_recent(self, now=None):
        now = now or utcnow()
        return self.recorded_at is not None and self.recorded_at > now - timedelta(hours=24)

    def to_dict(self, include_ward=True):
        data = {
            "id": self.id,
            "ward_id": self.ward_id,
            "date": _iso(self.date),
            "temperature": {
                "current": self.temperature_current,
                "min": self.temperature_min,
                "max": self.temperature_max,
                "feels_like": self.temperature_feels_like,
            },
            "humidity": self.humidity,
            "rainfall": self.rainfall,
            "wind_speed": self.wind_speed,
            "wind_direction": self.wind_direction,
            "wind_direction_cardinal": self.wind_direction_cardinal,
            "wind_gust": self.wind_gust,
            "pressure": self.pressure,
            "visibility": self.visibility,
            "weather_condition": {
                "main": self.condition_main,
                "description": self.condition_description,
                "icon": self.condition_icon,
            },
            "uv_index": self.uv_index,
            "aqi": self.aqi,
            "data_source": self.data_source,
            "source_id": self.source_id,
            "is_forecast": self.is_forecast,
            "confidence_level": self.confidence_level,
            "is_recent": self.is_recent(),
            "recorded_at": _iso(self.recorded_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_ward and self.ward is not None:
            data["ward"] = self.ward.summary()
        return data


class DrainageData(TimestampMixin, Base):
    __tablename__ = "drainage_data"

    id = Column(Integer, primary_key=True)
    ward_id = Column(Integer, ForeignKey("wards.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    type = Column(String(30), nullable=False, default="drain", index=True)
    coordinates = Column(JSON)
    geometry = Column(JSON)

    length = Column(Float)
    width = Column(Float)
    depth = Column(Float)
    diameter = Column(Float)
    design_capacity = Column(Float)
    current_capacity = Column(Float)
    efficiency_percentage = Column(Float)

    condition = Column(String(20), nullable=False, default="good", index=True)
    condition_score = Column(Integer, default=3)
    last_inspection_date = Column(DateTime)
    next_maintenance_date = Column(DateTime)
    maintenance_history = Column(JSON, default=list)

    status = Column(String(30), default="operational", index=True)
    is_automated = Column(Boolean, default=False)
    environmental_impact = Column(JSON)

    construction_year = Column(Integer)
    estimated_value = Column(Float)
    annual_maintenance_cost = Column(Float)

    data_source = Column(String(20), default="manual_entry")
    verified = Column(Boolean, default=False)
    verified_date = Column(DateTime)
    notes = Column(Text)

    ward = relationship("Ward", back_populates="drainage_systems")

    def efficiency_score(self):
        if not self.design_capacity or not self.current_capacity:
            return 0
        return (self.current_capacity / self.design_capacity) * 100

    def is_maintenance_overdue(self, now=None):
        if not self.next_maintenance_date:
            return False
        return (now or utcnow()) > self.next_maintenance_date

    def to_dict(self, include_ward=True):
        data = {
            "id": self.id,
            "ward_id": self.ward_id,
            "name": self.name,
            "type": self.type,
            "coordinates": self.coordinates,
            "geometry": self.geometry,
            "length": self.length,
            "width": self.width,
            "depth": self.depth,
            "diameter": self.diameter,
            "design_capacity": self.design_capacity,
            "current_capacity": self.current_capacity,
            "efficiency_percentage": self.efficiency_percentage,
            "efficiency_score": self.efficiency_score(),
            "condition": self.condition,
            "condition_score": self.condition_score,
            "last_inspection_date": _iso(self.last_inspection_date),
            "next_maintenance_date": _iso(self.next_maintenance_date),
            "maintenance_overdue": self.is_maintenance_overdue(),
            "maintenance_history": self.maintenance_history or [],
            "status": self.status,
            "is_automated": self.is_automated,
            "environmental_impact": self.environmental_impact,
            "construction_year": self.construction_year,
            "estimated_value": self.estimated_value,
            "annual_maintenance_cost": self.annual_maintenance_cost,
            "data_source": self.data_source,
            "verified": self.verified,
            "verified_date": _iso(self.verified_date),
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_ward and self.ward is not None:
            data["ward"] = self.ward.summary()
        return data


class RoadBridgeData(TimestampMixin, Base):
    __tablename__ = "road_bridge_data"

    id = Column(Integer, primary_key=True)
    ward_id = Column(Integer, ForeignKey("wards.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    type = Column(String(30), nullable=False, default="road", index=True)
    coordinates = Column(JSON)
    geometry = Column(JSON)

    length = Column(Float)
    width = Column(Float)
    lanes = Column(Integer)
    surface_type = Column(String(20), default="asphalt")

    flood_level = Column(Float, nullable=False, default=0.0, index=True)
    elevation_above_sea_level = Column(Float)
    flood_history = Column(JSON, default=list)
    structural_data = Column(JSON)

    condition = Column(String(20), default="good", index=True)
    condition_score = Column(Integer, default=3)
    last_inspection_date = Column(DateTime)
    next_inspection_date = Column(DateTime)

    traffic_volume = Column(JSON)
    usage_restrictions = Column(JSON, default=list)
    maintenance_history = Column(JSON, default=list)

    status = Column(String(30), default="operational", index=True)
    criticality_level = Column(String(20), default="medium", index=True)

    estimated_value = Column(Float)
    annual_maintenance_cost = Column(Float)
    data_source = Column(String(30), default="manual_entry")
    verified = Column(Boolean, default=False)
    verified_date = Column(DateTime)
    notes = Column(Text)

    ward = relationship("Ward", back_populates="road_bridges")

    def flood_vulnerability(self):
        score = (self.flood_level or 0) * 2
        elevation = self.elevation_above_sea_level
        if elevation is not None:
            if elevation < 5:
                score += 2
            elif elevation < 10:
                score += 1
        score *= CRITICALITY_MULTIPLIER.get(self.criticality_level, 1)
        return min(10, max(0, score))

    def is_inspection_overdue(self, now=None):
        if not self.next_inspection_date:
            return False
        return (now or utcnow()) > self.next_inspection_date

    def to_dict(self, include_ward=True):
        data = {
            "id": self.id,
            "ward_id": self.ward_id,
            "name": self.name,
            "type": self.type,
            "coordinates": self.coordinates,
            "geometry": self.geometry,
            "length": self.length,
            "width": self.width,
            "lanes": self.lanes,
            "surface_type": self.surface_type,
            "flood_level": self.flood_level,
            "flood_vulnerability": self.flood_vulnerability(),
            "elevation_above_sea_level": self.elevation_above_sea_level,
            "flood_history": self.flood_history or [],
            "structural_data": self.structural_data,
            "condition": self.condition,
            "condition_score": self.condition_score,
            "last_inspection_date": _iso(self.last_inspection_date),
            "next_inspection_date": _iso(self.next_inspection_date),
            "inspection_overdue": self.is_inspection_overdue(),
            "traffic_volume": self.traffic_volume,
            "usage_restrictions": self.usage_restrictions or [],
            "maintenance_history": self.maintenance_history or [],
            "status": self.status,
            "criticality_level": self.criticality_level,
            "estimated_value": self.estimated_value,
            "annual_maintenance_cost": self.annual_maintenance_cost,
            "data_source": self.data_source,
            "verified": self.verified,
            "verified_date": _iso(self.verified_date),
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_ward and self.ward is not None:
            data["ward"] = self.ward.summary()
        return data


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(120), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default="user", nullable=False)
    full_name = Column(String(100))
    phone = Column(String(30))
    address = Column(String(255))
    avatar = Column(String(255))
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime)

    settings = relationship("UserSettings", back_populates="user", uselist=False, cascade="all, delete-orphan")

    @property
    def display_name(self):
        return self.full_name or self.username

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "full_name": self.full_name,
            "phone": self.phone,
            "address": self.address,
            "avatar": self.avatar,
            "display_name": self.display_name,
            "is_active": self.is_active,
            "last_login": _iso(self.last_login),
            "created_at": _iso(self.created_at),
        }


class UserSettings(TimestampMixin, Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    theme = Column(String(10), nullable=False)
    language = Column(String(5), nullable=False)
    dashboard = Column(JSON, nullable=False)
    risk_thresholds = Column(JSON, nullable=False)
    notifications = Column(JSON, nullable=False)
    privacy = Column(JSON, nullable=False)
    accessibility = Column(JSON, nullable=False)

    user = relationship("User", back_populates="settings")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "theme": self.theme,
            "language": self.language,
            "dashboard": self.dashboard,
            "risk_thresholds": self.risk_thresholds,
            "notifications": self.notifications,
            "privacy": self.privacy,
            "accessibility": self.accessibility,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
