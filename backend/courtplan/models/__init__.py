from courtplan.models.block_assignment import BlockAssignment
from courtplan.models.court import Court
from courtplan.models.court_availability import CourtAvailability
from courtplan.models.court_group import CourtGroup, CourtGroupCourt
from courtplan.models.division import Division
from courtplan.models.encounter import Encounter, EncounterStatus
from courtplan.models.event import Event
from courtplan.models.phase import Phase
from courtplan.models.unit import Unit, UnitMember

__all__ = [
    "Event",
    "Court",
    "CourtGroup",
    "CourtGroupCourt",
    "CourtAvailability",
    "Division",
    "Phase",
    "Unit",
    "UnitMember",
    "Encounter",
    "EncounterStatus",
    "BlockAssignment",
]
