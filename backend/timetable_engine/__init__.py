from timetable_engine.core.exceptions import (  # noqa: F401
    AppError,
    ConfigurationError,
    InfeasibleScheduleError,
    InvariantViolationError,
    SchedulerError,
)
from timetable_engine.schemas.generator import (  # noqa: F401
    GenerateTimetableRequest,
    GenerateTimetableResponse,
    GenerationSettings,
    PenaltyWeights,
)
from timetable_engine.services.individual import PlacementPolicy  # noqa: F401
from timetable_engine.services.timetable_engine import TimetableEngine, generate_timetable  # noqa: F401
