"""
SmartSafety - Error taxonomy

Every failure of the sync/reporting core is recovered at the boundary nearest
its origin and shown to the user as ``user_message``.
"""

from typing import Any, Mapping, Optional


class SmartSafetyError(Exception):
    """Base class for recoverable SmartSafety failures."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class PermissionDenied(SmartSafetyError):
    """A device capability (location, camera, media library) was refused."""

    def __init__(self, capability: str = "location"):
        self.capability = capability
        self.user_message = f"Enable {capability} access to continue"
        super().__init__(f"{capability} permission denied")


class LocationUnavailable(SmartSafetyError):
    """Permission was granted but no position fix could be obtained."""

    user_message = "Could not determine your current location"


class UploadFailure(SmartSafetyError):
    """The object store rejected the photo or the network failed."""

    user_message = "Photo upload failed. Your report was not submitted."


class RepositoryFailure(SmartSafetyError):
    """Query or insert against the incident repository failed."""

    user_message = "Could not reach the incident service"


class MalformedEvent(SmartSafetyError):
    """A change-feed payload is missing its id or event kind."""

    user_message = "Received an invalid incident update"

    def __init__(self, reason: str, payload: Optional[Mapping[str, Any]] = None):
        self.reason = reason
        self.payload = payload
        super().__init__(f"Malformed change event: {reason}")
