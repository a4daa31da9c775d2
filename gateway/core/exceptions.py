# gateway/core/exceptions.py

from fastapi import HTTPException, status


class GatewayError(HTTPException):
    def __init__(self, detail="An error occurred", status_code=status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


# ---------------------------------------------------------
# Dispatch (service page)
# ---------------------------------------------------------
class ServiceNotFoundError(GatewayError):
    def __init__(self, detail="Service not found"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class ServiceInactiveError(GatewayError):
    def __init__(self, detail="Service is not active"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class RegistryUnavailableError(GatewayError):
    """The record store could not answer a registry read."""

    def __init__(self, detail="Failed to load service configuration"):
        super().__init__(detail=detail, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class AuthenticationFailedError(GatewayError):
    def __init__(self, detail="Authentication failed"):
        super().__init__(detail=detail, status_code=status.HTTP_401_UNAUTHORIZED)


# ---------------------------------------------------------
# Identity / admin
# ---------------------------------------------------------
class NotAuthenticatedError(GatewayError):
    def __init__(self, detail="Not authenticated"):
        super().__init__(detail=detail, status_code=status.HTTP_401_UNAUTHORIZED)


class PermissionDenied(GatewayError):
    def __init__(self, detail="Permission denied"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(GatewayError):
    def __init__(self, detail="Resource not found"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(GatewayError):
    def __init__(self, detail="Resource already exists"):
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)


class RegistryMutationError(GatewayError):
    def __init__(self, detail="Failed to update the service registry"):
        super().__init__(detail=detail, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class IdentityProviderError(Exception):
    """Raised by the identity adapter when the provider cannot be reached or misbehaves."""
