from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .store import RegistryStore

logger = logging.getLogger(__name__)

DEFAULT_COURSES = (
    "Coretrade",
    "Multiskill",
    "Direct R1",
    "MBF",
    "CSOC",
    "BCSSC/CSC",
    "First Aid",
    "bizsafe Level 1",
    "bizsafe Level 2",
    "Boomlift Operator",
    "Scissorlift Operator",
    "Gondola Operator",
    "Lifting Supervisor",
    "Scaffolding Supervisor",
    "Metal Scaffold Supervisor",
    "Scaffold Erector",
    "Welder's Cert",
    "EPIC (DTL)",
    "EPIC (NEL)",
    "SPIC",
    "WAH Worker",
    "Managing WAH",
    "WSH Level B - Safety Coordinator",
    "WSH Level C - Safety Officer",
    "Signalman / Rigger",
    "Register Earthwork Supervisor",
    "Airport Pass",
    "Boustead Pass",
    "JTC Course",
)


def seed_courses(store: "RegistryStore", names: Optional[Iterable[str]] = None) -> int:
    """Insert the default catalog when the course table is empty.

    Safe to call on every start; returns the number of courses inserted.
    """
    if store.count_courses() > 0:
        return 0
    inserted = 0
    for name in names if names is not None else DEFAULT_COURSES:
        store.insert_course({"name": name, "is_active": True})
        inserted += 1
    logger.info("Seeded %d courses into an empty catalog", inserted)
    return inserted


__all__ = ["DEFAULT_COURSES", "seed_courses"]
