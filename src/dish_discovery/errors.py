"""Application error hierarchy."""


class DishDiscoveryError(Exception):
    """Base error carrying a stable code and a retry hint."""

    code = "ERROR"
    retryable = False

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InputValidationError(DishDiscoveryError):
    """Rejected user input; never reaches the network."""

    code = "INPUT_INVALID"


class WorkflowStateError(DishDiscoveryError):
    """Operation is not allowed in the current workflow state."""

    code = "INVALID_TRANSITION"


class ExtractionFault(DishDiscoveryError):
    """Menu analysis failed or returned an unusable payload."""

    code = "EXTRACTION_FAILED"
    retryable = True


class GenerationFault(DishDiscoveryError):
    """Recipe generation failed for a single dish."""

    code = "GENERATION_FAILED"
    retryable = True


class PersistenceFault(DishDiscoveryError):
    """A repository write or read failed."""

    code = "PERSISTENCE_FAILED"
    retryable = True


class AuthorizationError(DishDiscoveryError):
    """No authenticated owner, or the row belongs to another owner."""

    code = "UNAUTHORIZED"


class NotFoundError(DishDiscoveryError):
    """Requested row does not exist for this owner."""

    code = "NOT_FOUND"
