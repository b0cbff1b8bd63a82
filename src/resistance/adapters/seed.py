"""Demo catalog and observation data for the in-memory store."""

import logging
import random
from datetime import date, datetime, timezone
from typing import Optional

from resistance.adapters.repository import InMemoryStore
from resistance.domain import model
from resistance.domain.filters import months_before

logger = logging.getLogger(__name__)

BACTERIA = [
    ("E. coli", "Escherichia coli", "Common gram-negative bacteria found in the intestines"),
    ("S. aureus", "Staphylococcus aureus", "Gram-positive bacteria commonly found on the skin"),
    ("K. pneumoniae", "Klebsiella pneumoniae", "Gram-negative bacteria that can cause pneumonia and other infections"),
    ("P. aeruginosa", "Pseudomonas aeruginosa", "Gram-negative bacteria associated with hospital-acquired infections"),
]

ANTIBIOTICS = [
    ("Amoxicillin", "Penicillin", "Beta-lactam antibiotic used to treat a range of bacterial infections"),
    ("Ciprofloxacin", "Fluoroquinolone", "Broad-spectrum antibiotic effective against gram-negative bacteria"),
    ("Ceftriaxone", "Cephalosporin", "Third-generation cephalosporin with broad-spectrum activity"),
    ("Meropenem", "Carbapenem", "Broad-spectrum beta-lactam antibiotic reserved for serious infections"),
    ("Vancomycin", "Glycopeptide", "Used for serious gram-positive infections, including MRSA"),
]

REGIONS = [
    ("North America", "NA"),
    ("Europe", "EU"),
    ("Asia", "AS"),
    ("Africa", "AF"),
]

# (name, type, region index, address, contact)
FACILITIES = [
    ("Central Hospital", "Hospital", 0, "123 Main St, New York", "contact@centralhospital.org"),
    ("University Medical Center", "Hospital", 0, "456 College Rd, Boston", "info@universitymedical.org"),
    ("Regional Health Center", "Clinic", 1, "789 Health Blvd, London", "info@regionalhealthcenter.org"),
    ("Community Hospital", "Hospital", 2, "101 Care St, Tokyo", "info@communityhospital.org"),
]

RESOURCES = [
    ("WHO Global Report on AMR Surveillance", "document",
     "https://www.who.int/publications/i/item/9789240054608",
     "Comprehensive report on the global state of antimicrobial resistance", datetime(2023, 4, 15)),
    ("Webinar: New Approaches to MDRO Detection", "webinar",
     "https://example.com/webinars/mdro-detection",
     "Learn about the latest methods for detecting multi-drug resistant organisms", datetime(2023, 7, 15)),
    ("Guide: Interpreting Antibiograms", "guide",
     "https://example.com/guides/antibiogram-interpretation",
     "A comprehensive guide to understanding and interpreting antibiograms", datetime(2023, 3, 10)),
]

MONTHS_OF_HISTORY = 12


def seed_demo_data(store: InMemoryStore, today: Optional[date] = None, rng: Optional[random.Random] = None) -> int:
    """
    Fill an in-memory store with the demo catalogs and a year of random observations.

    Returns the number of observations created.
    """
    from resistance.service_layer.unit_of_work import InMemoryUnitOfWork

    today = today or date.today()
    rng = rng or random.Random()

    with InMemoryUnitOfWork(store) as uow:
        bacteria = [uow.bacteria.add(model.Bacteria(*b)) for b in BACTERIA]
        antibiotics = [uow.antibiotics.add(model.Antibiotic(*a)) for a in ANTIBIOTICS]
        regions = [uow.regions.add(model.Region(*r)) for r in REGIONS]
        facilities = [
            uow.facilities.add(model.Facility(name, kind, regions[region].id, address, contact))
            for name, kind, region, address, contact in FACILITIES
        ]

        uow.alerts.add(model.Alert(
            title="Critical: Carbapenem Resistance Surge",
            description="300% increase in carbapenem-resistant K. pneumoniae detected in Northwest region",
            severity=model.AlertSeverity.CRITICAL.value,
            bacteria_id=bacteria[2].id, antibiotic_id=antibiotics[3].id, region_id=regions[0].id,
        ))
        uow.alerts.add(model.Alert(
            title="Warning: New Resistance Mechanism",
            description="Novel ESBL gene variant detected in 5 facilities across the Eastern region",
            severity=model.AlertSeverity.WARNING.value,
            bacteria_id=bacteria[0].id, region_id=regions[1].id,
        ))
        uow.alerts.add(model.Alert(
            title="Pattern Change: Quinolone Resistance",
            description="Stable trend of ciprofloxacin resistance in E. coli after 2 years of increases",
            severity=model.AlertSeverity.INFO.value,
            bacteria_id=bacteria[0].id, antibiotic_id=antibiotics[1].id,
        ))

        for title, kind, url, description, published_at in RESOURCES:
            uow.resources.add(model.Resource(
                title=title, type=kind, url=url, description=description,
                published_at=published_at.replace(tzinfo=timezone.utc),
            ))

        observations = []
        for months_ago in range(MONTHS_OF_HISTORY):
            sample_date = months_before(today, months_ago)
            for b in bacteria:
                for a in antibiotics:
                    for r in regions:
                        total = rng.randint(100, 1099)
                        resistant = int(total * rng.random() * 0.8)
                        observations.append(model.Observation(
                            bacteria_id=b.id,
                            antibiotic_id=a.id,
                            region_id=r.id,
                            facility_id=rng.choice(facilities).id,
                            sample_date=sample_date,
                            total_samples=total,
                            resistant_samples=resistant,
                        ))
        uow.observations.add_all(observations)
        uow.commit()

    logger.info(f"Seeded in-memory store with {len(observations)} observations")
    return len(observations)
