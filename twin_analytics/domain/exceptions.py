"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is malformed or out of range"""

    pass


class InvalidTransactionDataError(ValidationError):
    """Transaction data is malformed or invalid"""

    pass


class ScenarioNotFoundError(ValidationError):
    """Requested stress scenario id is not in the catalog"""

    def __init__(self, scenario_id: str):
        self.scenario_id = scenario_id
        super().__init__(f"Unknown stress scenario: {scenario_id!r}")


class InvalidHorizonError(ValidationError):
    """Projection horizon is outside the allowed range"""

    pass


class DegenerateInputWarning(UserWarning):
    """History too short or empty to score; a neutral result was returned"""

    pass
