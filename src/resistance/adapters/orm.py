import logging
from sqlalchemy import (
    Table,
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    func,
)
from sqlalchemy.orm import registry
from resistance.domain import model

logger = logging.getLogger(__name__)

# SQLAlchemy 2.0 pattern: use registry
mapper_registry = registry()
metadata = mapper_registry.metadata

bacteria = Table(
    "bacteria",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("scientific_name", String(255), nullable=False),
    Column("description", Text),
)

antibiotics = Table(
    "antibiotics",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("class", String(255), nullable=False, key="drug_class"),
    Column("description", Text),
)

regions = Table(
    "regions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("code", String(50), nullable=False, unique=True),
    Column("parent_id", Integer, ForeignKey("regions.id")),
)

facilities = Table(
    "facilities",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("type", String(100), nullable=False),
    Column("region_id", Integer, ForeignKey("regions.id"), nullable=False),
    Column("address", Text),
    Column("contact_info", Text),
)

# Observation facts - not mapped to the (immutable) domain entity,
# the repository reads and writes rows through Core
resistance_data = Table(
    "resistance_data",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("bacteria_id", Integer, ForeignKey("bacteria.id"), nullable=False, index=True),
    Column("antibiotic_id", Integer, ForeignKey("antibiotics.id"), nullable=False, index=True),
    Column("region_id", Integer, ForeignKey("regions.id"), nullable=False, index=True),
    Column("facility_id", Integer, ForeignKey("facilities.id")),
    Column("sample_date", Date, nullable=False, index=True),
    Column("total_samples", Integer, nullable=False),
    Column("resistant_samples", Integer, nullable=False),
    Column("uploaded_by_id", Integer),
    Column("uploaded_at", DateTime(timezone=True), server_default=func.now()),
    Column("notes", Text),
)

alerts = Table(
    "alerts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("severity", String(20), nullable=False),
    Column("bacteria_id", Integer, ForeignKey("bacteria.id")),
    Column("antibiotic_id", Integer, ForeignKey("antibiotics.id")),
    Column("region_id", Integer, ForeignKey("regions.id")),
    Column("created_at", DateTime(timezone=True)),
    Column("is_active", Boolean, nullable=False, default=True),
)

resources = Table(
    "resources",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("type", String(50), nullable=False),
    Column("url", Text, nullable=False),
    Column("description", Text),
    Column("published_at", DateTime(timezone=True), nullable=False),
    Column("added_by_id", Integer),
)


def start_mappers():
    if mapper_registry.mappers:
        return
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.Bacteria, bacteria)
    mapper_registry.map_imperatively(model.Antibiotic, antibiotics)
    mapper_registry.map_imperatively(model.Region, regions)
    mapper_registry.map_imperatively(model.Facility, facilities)
    mapper_registry.map_imperatively(model.Alert, alerts)
    mapper_registry.map_imperatively(model.Resource, resources)
