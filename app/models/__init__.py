# models package for SQLModel models
from .user import User, Role  # noqa: F401  (import for metadata registration)
from .inspection import Inspection, InspectionStatus  # noqa: F401
from .hazard import Hazard, HazardCategory, RiskLevel  # noqa: F401
