from fastapi import HTTPException, status


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Invalid or missing authentication"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class HomeNotFoundError(HTTPException):
    def __init__(self, home_id: str | None = None):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Home not found")
        self.home_id = home_id


class ServiceRecordNotFoundError(HTTPException):
    def __init__(self, service_record_id: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Service record not found")
        self.service_record_id = service_record_id


class ServiceRecordHomeMismatchError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Service record does not belong to this home",
        )


class InvalidServiceRecordStateError(HTTPException):
    def __init__(self, current: str, action: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot {action} a service record in '{current}' status",
        )


class ConnectionNotFoundError(HTTPException):
    def __init__(self, connection_id: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")
        self.connection_id = connection_id


class VerificationError(HTTPException):
    """A postcard code could not be accepted. The detail says whether to retry or re-request."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class RateLimitedError(HTTPException):
    def __init__(self, detail: str = "Too many requests"):
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class UpstreamDeliveryError(HTTPException):
    def __init__(self, detail: str = "Upstream provider failed"):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


class InvalidAttachmentError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ActiveConnectionExistsError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="This contractor already has an active connection to the home",
        )


class BadRequestError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
