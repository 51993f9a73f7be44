"""データモデル"""

from dermclinics.models.clinic import (
    Clinic,
    ClinicFilters,
    ClinicListQuery,
    ClinicListResponse,
    Location,
    Photo,
    StateDataset,
)

__all__ = [
    "Clinic",
    "ClinicFilters",
    "ClinicListQuery",
    "ClinicListResponse",
    "Location",
    "Photo",
    "StateDataset",
]
