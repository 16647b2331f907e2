"""Request bodies.

Each resource has a ``*Base`` model with every field optional, a ``*Create``
model that re-declares the required fields, and an ``*Update`` model that is
the base as-is. Routers dump creates with ``exclude_none`` and updates with
``exclude_unset`` so database defaults and partial updates both work.
"""
from datetime import date as date_type, datetime
from typing import Any, ClassVar, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing_extensions import Annotated

from floodwatch.geo import shape_from_geojson
from floodwatch.models import to_naive_utc

NonNegative = Annotated[float, Field(ge=0)]
Percentage = Annotated[float, Field(ge=0, le=100)]
Score = Annotated[float, Field(ge=0, le=10)]
Weight = Annotated[float, Field(ge=0, le=1)]
Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]
ConditionScore = Annotated[int, Field(ge=1, le=5)]

Condition = Literal["excellent", "good", "fair", "poor", "critical"]
RiskCategoryName = Literal["Very Low", "Low", "Medium", "High", "Very High"]

MAX_CONSTRUCTION_YEAR = date_type.today().year + 5


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("*", mode="after")
    @classmethod
    def _naive_datetimes(cls, value):
        if isinstance(value, datetime):
            return to_naive_utc(value)
        return value


def _check_construction_year(value):
    if value is not None and not 1800 <= value <= MAX_CONSTRUCTION_YEAR:
        raise ValueError("Construction year must be between 1800 and %d" % MAX_CONSTRUCTION_YEAR)
    return value


ConstructionYear = Annotated[int, AfterValidator(_check_construction_year)]


# --- Geometry ---

class Geometry(BaseModel):
    type: Literal["Point", "LineString", "Polygon", "MultiPoint", "MultiLineString", "MultiPolygon"]
    coordinates: Any

    @model_validator(mode="after")
    def _valid_shape(self):
        shape_from_geojson({"type": self.type, "coordinates": self.coordinates})
        return self


class InfrastructureCount(BaseModel):
    roads: int = Field(0, ge=0)
    bridges: int = Field(0, ge=0)
    drainage_systems: int = Field(0, ge=0)


# --- Ward ---

class WardBase(RequestModel):
    ward_name: Optional[Annotated[str, Field(min_length=1, max_length=100)]] = None
    district: Optional[Annotated[str, Field(max_length=100)]] = None
    province: Optional[Annotated[str, Field(max_length=100)]] = None
    geometry: Optional[Geometry] = None

    population_density: Optional[NonNegative] = None
    rainfall: Optional[NonNegative] = None
    low_elevation: Optional[NonNegative] = None
    urban_land: Optional[Percentage] = None
    drainage_capacity: Optional[NonNegative] = None

    area_km2: Optional[NonNegative] = None
    population: Optional[Annotated[int, Field(ge=0)]] = None
    infrastructure_count: Optional[InfrastructureCount] = None


class WardCreate(WardBase):
    ward_name: Annotated[str, Field(min_length=1, max_length=100)]
    geometry: Geometry


class WardUpdate(WardBase):
    pass


class WardBulkImport(BaseModel):
    wards: List[Dict[str, Any]] = Field(min_length=1)


# --- Risk index ---

class Component(BaseModel):
    """One weighted sub-indicator. Extra descriptive fields are kept as-is."""
    model_config = ConfigDict(extra="allow")

    weight: Optional[Weight] = None
    contribution: Optional[Score] = None


class ComponentGroup(BaseModel):
    DEFAULT_WEIGHTS: ClassVar[Dict[str, float]] = {}

    @model_validator(mode="after")
    def _default_weights(self):
        for name, weight in self.DEFAULT_WEIGHTS.items():
            component = getattr(self, name)
            if component is not None and component.weight is None:
                component.weight = weight
        return self


class ExposureComponents(ComponentGroup):
    DEFAULT_WEIGHTS: ClassVar[Dict[str, float]] = {
        "population_density": 0.3, "urban_land_use": 0.25, "elevation": 0.25, "proximity_to_water": 0.2,
    }
    population_density: Optional[Component] = None
    urban_land_use: Optional[Component] = None
    elevation: Optional[Component] = None
    proximity_to_water: Optional[Component] = None


class SusceptibilityComponents(ComponentGroup):
    DEFAULT_WEIGHTS: ClassVar[Dict[str, float]] = {
        "rainfall_intensity": 0.4, "soil_type": 0.2, "slope": 0.2, "drainage_capacity": 0.2,
    }
    rainfall_intensity: Optional[Component] = None
    soil_type: Optional[Component] = None
    slope: Optional[Component] = None
    drainage_capacity: Optional[Component] = None


class ResilienceComponents(ComponentGroup):
    DEFAULT_WEIGHTS: ClassVar[Dict[str, float]] = {
        "drainage_systems": 0.3, "infrastructure": 0.25, "emergency_services": 0.25, "community_preparedness": 0.2,
    }
    drainage_systems: Optional[Component] = None
    infrastructure: Optional[Component] = None
    emergency_services: Optional[Component] = None
    community_preparedness: Optional[Component] = None


class ComparedToPrevious(BaseModel):
    period: Optional[Literal["day", "week", "month", "year"]] = None
    change_percentage: Optional[float] = None
    change_amount: Optional[float] = None


class WeatherWarning(BaseModel):
    type: Optional[Literal["flood", "heavy_rain", "storm", "typhoon"]] = None
    severity: Optional[Literal["low", "medium", "high", "extreme"]] = None
    expected_impact: Optional[Score] = None


class UpstreamConditions(BaseModel):
    dam_release: bool = False
    upstream_rainfall: Optional[NonNegative] = None


class ExternalFactors(BaseModel):
    weather_warnings: List[WeatherWarning] = []
    upstream_conditions: Optional[UpstreamConditions] = None


class InputDataSource(BaseModel):
    name: str
    type: Optional[Literal["weather", "sensor", "survey", "satellite", "manual"]] = None
    reliability: Optional[Percentage] = None


class RiskIndexBase(RequestModel):
    ward_id: Optional[int] = None
    date: Optional[datetime] = None

    exposure: Optional[Score] = None
    susceptibility: Optional[Score] = None
    resilience: Optional[Score] = None

    exposure_components: Optional[ExposureComponents] = None
    susceptibility_components: Optional[SusceptibilityComponents] = None
    resilience_components: Optional[ResilienceComponents] = None

    risk_trend: Optional[Literal["increasing", "stable", "decreasing"]] = None
    compared_to_previous: Optional[ComparedToPrevious] = None
    external_factors: Optional[ExternalFactors] = None
    confidence_level: Optional[Percentage] = None
    data_completeness: Optional[Percentage] = None
    calculation_method: Optional[Literal["automated", "manual", "hybrid"]] = None
    calculation_version: Optional[str] = None
    input_data_sources: Optional[List[InputDataSource]] = None

    validated: Optional[bool] = None
    review_notes: Optional[Annotated[str, Field(max_length=1000)]] = None
    notes: Optional[Annotated[str, Field(max_length=500)]] = None


class RiskIndexCreate(RiskIndexBase):
    ward_id: int
    date: datetime


class RiskIndexUpdate(RiskIndexBase):
    pass


class RiskBulkImport(BaseModel):
    riskData: List[Dict[str, Any]] = Field(min_length=1)


# --- Weather ---

Celsius = Annotated[float, Field(ge=-50, le=60)]


class Temperature(BaseModel):
    current: Optional[Celsius] = None
    min: Optional[Celsius] = None
    max: Optional[Celsius] = None
    feels_like: Optional[Celsius] = None


class WeatherCondition(BaseModel):
    main: Literal["Clear", "Clouds", "Rain", "Drizzle", "Thunderstorm", "Snow", "Mist", "Fog"] = "Clear"
    description: Optional[Annotated[str, Field(max_length=200)]] = None
    icon: Optional[Annotated[str, Field(max_length=10)]] = None


class WeatherBase(RequestModel):
    ward_id: Optional[int] = None
    date: Optional[datetime] = None
    temperature: Optional[Temperature] = None
    humidity: Optional[Percentage] = None
    rainfall: Optional[NonNegative] = None
    wind_speed: Optional[NonNegative] = None
    wind_direction: Optional[Annotated[float, Field(ge=0, le=360)]] = None
    wind_gust: Optional[NonNegative] = None
    pressure: Optional[Annotated[float, Field(ge=800, le=1200)]] = None
    visibility: Optional[NonNegative] = None
    weather_condition: Optional[WeatherCondition] = None
    uv_index: Optional[Annotated[float, Field(ge=0, le=11)]] = None
    aqi: Optional[Annotated[float, Field(ge=0, le=500)]] = None
    data_source: Optional[Literal["weather_api", "manual", "sensor", "forecast"]] = None
    source_id: Optional[str] = None
    is_forecast: Optional[bool] = None
    confidence_level: Optional[Percentage] = None


class WeatherCreate(WeatherBase):
    ward_id: int
    date: datetime
    humidity: Percentage
    rainfall: NonNegative = 0


class WeatherUpdate(WeatherBase):
    pass


class WeatherBulkImport(BaseModel):
    weatherData: List[Dict[str, Any]] = Field(min_length=1)


# --- Drainage ---

class PointCoordinates(BaseModel):
    latitude: Optional[Latitude] = None
    longitude: Optional[Longitude] = None


class DrainageMaintenance(BaseModel):
    date: datetime
    type: Literal["cleaning", "repair", "replacement", "inspection", "upgrade"]
    description: Optional[Annotated[str, Field(max_length=500)]] = None
    cost: Optional[NonNegative] = None
    performed_by: Optional[Annotated[str, Field(max_length=100)]] = None


class EnvironmentalImpact(BaseModel):
    water_quality: Optional[Literal["excellent", "good", "fair", "poor"]] = None
    sediment_accumulation: Optional[NonNegative] = None
    pollution_level: Optional[Literal["none", "low", "moderate", "high", "severe"]] = None


class DrainageBase(RequestModel):
    ward_id: Optional[int] = None
    name: Optional[Annotated[str, Field(min_length=1, max_length=200)]] = None
    type: Optional[Literal["canal", "drain", "culvert", "pump_station", "retention_basin",
                           "sewer_system", "open_drain", "underground_pipe"]] = None
    coordinates: Optional[PointCoordinates] = None
    geometry: Optional[Geometry] = None
    length: Optional[NonNegative] = None
    width: Optional[NonNegative] = None
    depth: Optional[NonNegative] = None
    diameter: Optional[NonNegative] = None
    design_capacity: Optional[NonNegative] = None
    current_capacity: Optional[NonNegative] = None
    efficiency_percentage: Optional[Percentage] = None
    condition: Optional[Condition] = None
    condition_score: Optional[ConditionScore] = None
    last_inspection_date: Optional[datetime] = None
    next_maintenance_date: Optional[datetime] = None
    maintenance_history: Optional[List[DrainageMaintenance]] = None
    status: Optional[Literal["operational", "maintenance", "out_of_service", "under_construction"]] = None
    is_automated: Optional[bool] = None
    environmental_impact: Optional[EnvironmentalImpact] = None
    construction_year: Optional[ConstructionYear] = None
    estimated_value: Optional[NonNegative] = None
    annual_maintenance_cost: Optional[NonNegative] = None
    data_source: Optional[Literal["survey", "gis", "manual_entry", "sensor"]] = None
    verified: Optional[bool] = None
    verified_date: Optional[datetime] = None
    notes: Optional[Annotated[str, Field(max_length=1000)]] = None


class DrainageCreate(DrainageBase):
    ward_id: int
    name: Annotated[str, Field(min_length=1, max_length=200)]


class DrainageUpdate(DrainageBase):
    pass


# --- Road / bridge ---

class LineCoordinates(BaseModel):
    start_latitude: Optional[Latitude] = None
    start_longitude: Optional[Longitude] = None
    end_latitude: Optional[Latitude] = None
    end_longitude: Optional[Longitude] = None


class FloodEvent(BaseModel):
    date: datetime
    flood_depth: Optional[NonNegative] = None
    duration_hours: Optional[NonNegative] = None
    impact: Literal["none", "minor", "moderate", "severe", "critical"]
    description: Optional[Annotated[str, Field(max_length=500)]] = None


class StructuralData(BaseModel):
    material: Optional[Literal["concrete", "steel", "wood", "stone", "composite"]] = None
    construction_year: Optional[ConstructionYear] = None
    design_load: Optional[Literal["light", "medium", "heavy", "extra_heavy"]] = None
    span_count: Optional[Annotated[int, Field(ge=1)]] = None
    max_span_length: Optional[NonNegative] = None


class TrafficVolume(BaseModel):
    daily_average: Optional[NonNegative] = None
    peak_hour: Optional[NonNegative] = None


class RoadMaintenance(BaseModel):
    date: datetime
    type: Literal["repair", "replacement", "inspection", "painting", "reinforcement", "cleaning"]
    description: Optional[Annotated[str, Field(max_length=500)]] = None
    cost: Optional[NonNegative] = None
    contractor: Optional[Annotated[str, Field(max_length=100)]] = None


class RoadBridgeBase(RequestModel):
    ward_id: Optional[int] = None
    name: Optional[Annotated[str, Field(min_length=1, max_length=200)]] = None
    type: Optional[Literal["road", "bridge", "culvert", "tunnel", "highway", "street", "boulevard"]] = None
    coordinates: Optional[LineCoordinates] = None
    geometry: Optional[Geometry] = None
    length: Optional[NonNegative] = None
    width: Optional[NonNegative] = None
    lanes: Optional[Annotated[int, Field(ge=1, le=10)]] = None
    surface_type: Optional[Literal["asphalt", "concrete", "gravel", "dirt", "brick", "stone"]] = None
    flood_level: Optional[Score] = None
    elevation_above_sea_level: Optional[NonNegative] = None
    flood_history: Optional[List[FloodEvent]] = None
    structural_data: Optional[StructuralData] = None
    condition: Optional[Condition] = None
    condition_score: Optional[ConditionScore] = None
    last_inspection_date: Optional[datetime] = None
    next_inspection_date: Optional[datetime] = None
    traffic_volume: Optional[TrafficVolume] = None
    usage_restrictions: Optional[List[Literal["weight_limit", "height_limit", "width_limit",
                                              "emergency_only", "seasonal_closure"]]] = None
    maintenance_history: Optional[List[RoadMaintenance]] = None
    status: Optional[Literal["operational", "maintenance", "closed", "under_construction", "damaged"]] = None
    criticality_level: Optional[Literal["low", "medium", "high", "critical"]] = None
    estimated_value: Optional[NonNegative] = None
    annual_maintenance_cost: Optional[NonNegative] = None
    data_source: Optional[Literal["survey", "gis", "manual_entry", "inspection_report"]] = None
    verified: Optional[bool] = None
    verified_date: Optional[datetime] = None
    notes: Optional[Annotated[str, Field(max_length=1000)]] = None


class RoadBridgeCreate(RoadBridgeBase):
    ward_id: int
    name: Annotated[str, Field(min_length=1, max_length=200)]
    flood_level: Score = 0


class RoadBridgeUpdate(RoadBridgeBase):
    pass


# --- Users ---

Password = Annotated[str, Field(min_length=6, max_length=128)]


class RegisterRequest(RequestModel):
    username: Annotated[str, Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_]+$")]
    email: EmailStr
    password: Password
    full_name: Optional[Annotated[str, Field(max_length=100)]] = None
    phone: Optional[Annotated[str, Field(max_length=30)]] = None
    address: Optional[Annotated[str, Field(max_length=255)]] = None


class LoginRequest(RequestModel):
    email: str
    password: str


class ProfileUpdate(RequestModel):
    email: Optional[EmailStr] = None
    full_name: Optional[Annotated[str, Field(max_length=100)]] = None
    phone: Optional[Annotated[str, Field(max_length=30)]] = None
    address: Optional[Annotated[str, Field(max_length=255)]] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: Password


class AdminUserUpdate(RequestModel):
    role: Optional[Literal["user", "admin"]] = None
    is_active: Optional[bool] = None
    full_name: Optional[Annotated[str, Field(max_length=100)]] = None
    phone: Optional[Annotated[str, Field(max_length=30)]] = None
    address: Optional[Annotated[str, Field(max_length=255)]] = None


# --- Settings ---

class DashboardSettings(BaseModel):
    default_view: Optional[Literal["map", "dashboard", "analytics"]] = None
    refresh_interval: Optional[Annotated[int, Field(ge=30, le=3600)]] = None
    show_notifications: Optional[bool] = None


class RiskThresholds(BaseModel):
    very_low: Optional[Score] = None
    low: Optional[Score] = None
    medium: Optional[Score] = None
    high: Optional[Score] = None
    very_high: Optional[Score] = None


class NotificationTypes(BaseModel):
    flood_alerts: Optional[bool] = None
    system_updates: Optional[bool] = None
    report_ready: Optional[bool] = None
    maintenance_due: Optional[bool] = None


class ChannelSettings(BaseModel):
    enabled: Optional[bool] = None
    types: Optional[NotificationTypes] = None


class NotificationSettings(BaseModel):
    email: Optional[ChannelSettings] = None
    browser: Optional[ChannelSettings] = None
    sms: Optional[ChannelSettings] = None


class PrivacySettings(BaseModel):
    share_analytics: Optional[bool] = None
    allow_data_collection: Optional[bool] = None
    public_profile: Optional[bool] = None


class AccessibilitySettings(BaseModel):
    font_size: Optional[Literal["small", "medium", "large"]] = None
    high_contrast: Optional[bool] = None
    reduce_motion: Optional[bool] = None


class SettingsUpdate(BaseModel):
    theme: Optional[Literal["light", "dark", "auto"]] = None
    language: Optional[Literal["vi", "en"]] = None
    dashboard: Optional[DashboardSettings] = None
    risk_thresholds: Optional[RiskThresholds] = None
    notifications: Optional[NotificationSettings] = None
    privacy: Optional[PrivacySettings] = None
    accessibility: Optional[AccessibilitySettings] = None


class NotificationUpdate(BaseModel):
    type: Literal["email", "browser", "sms"]
    settings: ChannelSettings
