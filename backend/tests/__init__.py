# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from courtplan.models.block_assignment import BlockAssignment  # noqa: F401
from courtplan.models.court import Court  # noqa: F401
from courtplan.models.court_availability import CourtAvailability  # noqa: F401
from courtplan.models.court_group import CourtGroup, CourtGroupCourt  # noqa: F401
from courtplan.models.division import Division  # noqa: F401
from courtplan.models.encounter import Encounter  # noqa: F401
from courtplan.models.event import Event  # noqa: F401
from courtplan.models.phase import Phase  # noqa: F401
from courtplan.models.unit import Unit, UnitMember  # noqa: F401
