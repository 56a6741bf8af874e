from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Unknown vehicle, spot or sector, or no active session for a plate."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Event contradicts the current session or spot state."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class CapacityExhaustedError(HTTPException):
    """Every sector of the garage is full."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class ValidationError(HTTPException):
    """Malformed payload, rejected before any state is touched."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PricingError(ValueError):
    pass
