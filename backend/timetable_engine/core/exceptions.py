class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the scheduler receives input it cannot work with."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class InfeasibleScheduleError(SchedulerError):
    """Raised by the feasibility gate; carries every reason the input cannot be scheduled."""
    def __init__(self, reasons: list[str]):
        self.reasons = list(reasons)
        summary = "Timetable input is infeasible: " + " ".join(self.reasons)
        super().__init__(summary, details={"reasons": self.reasons})

class InvariantViolationError(AppError):
    """Raised when engine data references something the inputs do not define."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=500, details=details)

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
