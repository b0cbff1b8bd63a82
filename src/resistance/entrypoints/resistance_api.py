"""
Resistance Surveillance API - thin request/response layer.

Dashboard reads go through views, writes are dispatched as commands through the
message bus. The unit-of-work factory (in-memory or PostgreSQL store) is chosen
once at startup and injected, never looked up from module state.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

import config
from resistance import views
from resistance.adapters.repository import DataUnavailable
from resistance.domain import commands, model
from resistance.domain.filters import FilterSpecification, TimePeriod
from resistance.service_layer import messagebus
from resistance.service_layer.unit_of_work import AbstractUnitOfWork, unit_of_work_factory

logger = logging.getLogger(__name__)


# ---------- Request/Response models ----------

class CamelModel(BaseModel):
    """JSON uses camelCase field names; snake_case is accepted on input too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ResistanceSummaryResponse(CamelModel):
    total_samples: int
    resistant_isolates: int
    resistance_rate: float
    participating_facilities: int


class ResistanceTrendResponse(CamelModel):
    month: str
    bacteria_id: int
    bacteria_name: str
    resistance_rate: float


class AntibioticEffectivenessResponse(CamelModel):
    id: int
    name: str
    effectiveness: float
    regions: List[str]


class BacteriaRequest(CamelModel):
    name: str
    scientific_name: str
    description: Optional[str] = None


class BacteriaResponse(BacteriaRequest):
    id: int


class AntibioticRequest(CamelModel):
    name: str
    drug_class: str = Field(alias="class")
    description: Optional[str] = None


class AntibioticResponse(AntibioticRequest):
    id: int


class RegionRequest(CamelModel):
    name: str
    code: str
    parent_id: Optional[int] = None


class RegionResponse(RegionRequest):
    id: int


class FacilityRequest(CamelModel):
    name: str
    type: str
    region_id: int
    address: Optional[str] = None
    contact_info: Optional[str] = None


class FacilityResponse(FacilityRequest):
    id: int


class ObservationRequest(CamelModel):
    bacteria_id: int
    antibiotic_id: int
    region_id: int
    facility_id: Optional[int] = None
    sample_date: date
    total_samples: int = Field(ge=0)
    resistant_samples: int = Field(ge=0)
    uploaded_by_id: Optional[int] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_counts(self):
        if self.resistant_samples > self.total_samples:
            raise ValueError("resistantSamples cannot exceed totalSamples")
        return self

    def to_domain(self) -> model.Observation:
        return model.Observation(**self.model_dump())


class ObservationResponse(CamelModel):
    id: int
    bacteria_id: int
    antibiotic_id: int
    region_id: int
    facility_id: Optional[int] = None
    sample_date: date
    total_samples: int
    resistant_samples: int
    uploaded_by_id: Optional[int] = None
    uploaded_at: Optional[datetime] = None
    notes: Optional[str] = None


class AlertRequest(CamelModel):
    title: str
    description: str
    severity: model.AlertSeverity
    bacteria_id: Optional[int] = None
    antibiotic_id: Optional[int] = None
    region_id: Optional[int] = None
    is_active: bool = True


class AlertResponse(CamelModel):
    id: int
    title: str
    description: str
    severity: str
    bacteria_id: Optional[int] = None
    antibiotic_id: Optional[int] = None
    region_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None


class ResourceRequest(CamelModel):
    title: str
    type: str
    url: str
    description: Optional[str] = None
    published_at: datetime
    added_by_id: Optional[int] = None

    @field_validator("published_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class ResourceResponse(ResourceRequest):
    id: int


# ---------- Dependencies ----------

def get_uow(request: Request) -> AbstractUnitOfWork:
    """A fresh unit of work per request from the injected factory."""
    return request.app.state.uow_factory()


def get_filters(
    bacteria_id: Optional[int] = Query(None, alias="bacteriaId"),
    antibiotic_id: Optional[int] = Query(None, alias="antibioticId"),
    region_id: Optional[int] = Query(None, alias="regionId"),
    time_period: Optional[TimePeriod] = Query(None, alias="timePeriod"),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
) -> FilterSpecification:
    """Parse dashboard query parameters; a missing timePeriod means the last 12 months."""
    return FilterSpecification.from_params(
        bacteria_id=bacteria_id,
        antibiotic_id=antibiotic_id,
        region_id=region_id,
        time_period=time_period,
        from_date=from_date,
        to_date=to_date,
    )


router = APIRouter()


# ---------- Endpoints ----------

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "amr-surveillance-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/api/dashboard/summary", response_model=ResistanceSummaryResponse)
def get_dashboard_summary(
    filters: FilterSpecification = Depends(get_filters),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """Total samples, resistant isolates, resistance rate and facility count."""
    summary = views.get_resistance_summary(filters, uow)
    return ResistanceSummaryResponse.model_validate(summary)


@router.get("/api/dashboard/trends", response_model=List[ResistanceTrendResponse])
def get_dashboard_trends(
    filters: FilterSpecification = Depends(get_filters),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """Monthly resistance rate per bacterium."""
    trends = views.get_resistance_trends(filters, uow)
    return [ResistanceTrendResponse.model_validate(t) for t in trends]


@router.get("/api/dashboard/effectiveness", response_model=List[AntibioticEffectivenessResponse])
def get_dashboard_effectiveness(
    filters: FilterSpecification = Depends(get_filters),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """Antibiotics ranked by effectiveness (100 - resistance rate)."""
    ranking = views.get_antibiotic_effectiveness(filters, uow)
    return [AntibioticEffectivenessResponse.model_validate(e) for e in ranking]


@router.get("/api/bacteria", response_model=List[BacteriaResponse])
def list_bacteria(uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        return [BacteriaResponse.model_validate(b) for b in uow.bacteria.list()]


@router.get("/api/bacteria/{bacteria_id}", response_model=BacteriaResponse)
def get_bacteria(bacteria_id: int, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        bacteria = uow.bacteria.get(bacteria_id)
        if bacteria is None:
            raise HTTPException(status_code=404, detail="Bacteria not found")
        return BacteriaResponse.model_validate(bacteria)


@router.post("/api/bacteria", response_model=BacteriaResponse, status_code=201)
def create_bacteria(request: BacteriaRequest, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        bacteria = uow.bacteria.add(model.Bacteria(**request.model_dump()))
        uow.commit()
        logger.info(f"Created bacteria {bacteria.id} ({bacteria.name})")
        return BacteriaResponse.model_validate(bacteria)


@router.get("/api/antibiotics", response_model=List[AntibioticResponse])
def list_antibiotics(uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        return [AntibioticResponse.model_validate(a) for a in uow.antibiotics.list()]


@router.get("/api/antibiotics/{antibiotic_id}", response_model=AntibioticResponse)
def get_antibiotic(antibiotic_id: int, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        antibiotic = uow.antibiotics.get(antibiotic_id)
        if antibiotic is None:
            raise HTTPException(status_code=404, detail="Antibiotic not found")
        return AntibioticResponse.model_validate(antibiotic)


@router.post("/api/antibiotics", response_model=AntibioticResponse, status_code=201)
def create_antibiotic(request: AntibioticRequest, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        antibiotic = uow.antibiotics.add(model.Antibiotic(**request.model_dump()))
        uow.commit()
        logger.info(f"Created antibiotic {antibiotic.id} ({antibiotic.name})")
        return AntibioticResponse.model_validate(antibiotic)


@router.get("/api/regions", response_model=List[RegionResponse])
def list_regions(uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        return [RegionResponse.model_validate(r) for r in uow.regions.list()]


@router.get("/api/regions/{region_id}", response_model=RegionResponse)
def get_region(region_id: int, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        region = uow.regions.get(region_id)
        if region is None:
            raise HTTPException(status_code=404, detail="Region not found")
        return RegionResponse.model_validate(region)


@router.post("/api/regions", response_model=RegionResponse, status_code=201)
def create_region(request: RegionRequest, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        region = uow.regions.add(model.Region(**request.model_dump()))
        uow.commit()
        logger.info(f"Created region {region.id} ({region.name})")
        return RegionResponse.model_validate(region)


@router.get("/api/facilities", response_model=List[FacilityResponse])
def list_facilities(
    region_id: Optional[int] = Query(None, alias="regionId"),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    criteria = {"region_id": region_id} if region_id is not None else {}
    with uow:
        return [FacilityResponse.model_validate(f) for f in uow.facilities.list(**criteria)]


@router.post("/api/facilities", response_model=FacilityResponse, status_code=201)
def create_facility(request: FacilityRequest, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        facility = uow.facilities.add(model.Facility(**request.model_dump()))
        uow.commit()
        logger.info(f"Created facility {facility.id} ({facility.name})")
        return FacilityResponse.model_validate(facility)


@router.get("/api/resistance-data", response_model=List[ObservationResponse])
def list_resistance_data(
    filters: FilterSpecification = Depends(get_filters),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    observations = views.get_resistance_data(filters, uow)
    return [ObservationResponse.model_validate(o) for o in observations]


@router.post("/api/resistance-data", response_model=ObservationResponse, status_code=201)
def create_resistance_data(request: ObservationRequest, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Record one manually entered observation."""
    try:
        cmd = commands.RecordObservation(observation=request.to_domain())
        [stored] = messagebus.handle(cmd, uow)
    except model.InvalidObservation as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ObservationResponse.model_validate(stored)


@router.post("/api/resistance-data/bulk", response_model=List[ObservationResponse], status_code=201)
def bulk_create_resistance_data(
    request: List[ObservationRequest],
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """
    Record an imported batch of observations.

    The whole batch is validated before anything is stored and is stored in a
    single unit of work: one bad record rejects the entire request.
    """
    try:
        observations = [item.to_domain() for item in request]
        cmd = commands.BulkRecordObservations(observations=observations, source="bulk")
        [stored] = messagebus.handle(cmd, uow)
    except model.InvalidObservation as e:
        raise HTTPException(status_code=400, detail=str(e))

    return [ObservationResponse.model_validate(o) for o in stored]


@router.get("/api/alerts", response_model=List[AlertResponse])
def list_alerts(
    active: Optional[bool] = None,
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """Alerts newest first; ?active=true restricts to active alerts."""
    criteria = {"is_active": active} if active is not None else {}
    with uow:
        return [AlertResponse.model_validate(a) for a in uow.alerts.list(**criteria)]


@router.post("/api/alerts", response_model=AlertResponse, status_code=201)
def create_alert(request: AlertRequest, uow: AbstractUnitOfWork = Depends(get_uow)):
    data = request.model_dump()
    data["severity"] = request.severity.value
    with uow:
        alert = uow.alerts.add(model.Alert(**data))
        uow.commit()
        logger.info(f"Created {alert.severity} alert {alert.id}")
        return AlertResponse.model_validate(alert)


@router.get("/api/resources", response_model=List[ResourceResponse])
def list_resources(uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        return [ResourceResponse.model_validate(r) for r in uow.resources.list()]


@router.get("/api/resources/{resource_id}", response_model=ResourceResponse)
def get_resource(resource_id: int, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        resource = uow.resources.get(resource_id)
        if resource is None:
            raise HTTPException(status_code=404, detail="Resource not found")
        return ResourceResponse.model_validate(resource)


@router.post("/api/resources", response_model=ResourceResponse, status_code=201)
def create_resource(request: ResourceRequest, uow: AbstractUnitOfWork = Depends(get_uow)):
    with uow:
        resource = uow.resources.add(model.Resource(**request.model_dump()))
        uow.commit()
        logger.info(f"Created resource {resource.id} ({resource.title})")
        return ResourceResponse.model_validate(resource)


async def data_unavailable_handler(request: Request, exc: DataUnavailable):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def create_app(uow_factory: Optional[Callable[[], AbstractUnitOfWork]] = None) -> FastAPI:
    """
    Build the API.

    Args:
        uow_factory: unit-of-work factory to serve requests with. If None, one
            is built from environment configuration at startup.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.uow_factory is None:
            app_config = config.get_app_config()
            logging.getLogger().setLevel(app_config.log_level)
            app.state.uow_factory = unit_of_work_factory(app_config)
        logger.info("✓ Resistance data store initialized")
        yield

    app = FastAPI(
        title="AMR Surveillance API",
        description="Antimicrobial resistance surveillance dashboard backend",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.uow_factory = uow_factory
    app.include_router(router)
    app.add_exception_handler(DataUnavailable, data_unavailable_handler)

    return app


logging.basicConfig(
    level=getattr(logging, config.get_log_level()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = create_app()


def main():
    import uvicorn

    host = os.environ.get("API_BIND_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "8000"))
    uvicorn.run("resistance.entrypoints.resistance_api:app", host=host, port=port)


if __name__ == "__main__":
    main()
