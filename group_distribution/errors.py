class DistributionGenerationError(Exception):
    """Raised when a distribution cannot be generated.

    `retryable` tells callers whether running again with fresh randomness may
    succeed (placement ran out of attempts) or not (the constraints cannot be
    satisfied for the requested number of groups).
    """

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class InfeasibleConstraintsError(DistributionGenerationError):
    def __init__(self, message: str):
        super().__init__(message, retryable=False)


class PlacementExhaustedError(DistributionGenerationError):
    def __init__(self, message: str, attempts: int):
        super().__init__(message, retryable=True)
        self.attempts = attempts
