from .base import Base
from .entities import (  # noqa: F401
    Facility,
    FacilityType,
    Inspection,
    Profile,
    SiteConfig,
)
