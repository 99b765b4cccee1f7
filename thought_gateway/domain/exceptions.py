"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidLabelError(DomainException):
    """Label is empty or does not match the label pattern after normalization"""

    pass


class InvalidAccountError(DomainException):
    """Account identifier is missing or too short"""

    pass


class InvalidAmountError(DomainException):
    """Credit amount must be a positive integer"""

    pass


class InvalidEventError(DomainException):
    """Entitlement event is missing its identifier, subject or product"""

    pass


class GenerationServiceError(DomainException):
    """Text generation service timed out, errored or is unavailable"""

    pass


class MalformedResponseError(GenerationServiceError):
    """Generation service responded with a payload that does not match its schema"""

    pass


class ClassificationServiceError(DomainException):
    """Vision classification call failed"""

    pass


class BankTooSmallError(DomainException):
    """Bank build produced fewer lines than the minimum acceptable count and was discarded"""

    def __init__(self, label: str, size: int, minimum: int):
        super().__init__(f"Bank for '{label}' too small: {size} < {minimum}")
        self.label = label
        self.size = size
        self.minimum = minimum
