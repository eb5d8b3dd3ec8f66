"""
Error taxonomy for the video store.

Every error carries the HTTP status it maps to and a message that is safe
to show to clients. Provider exceptions never travel past the storage
adapters: they are logged there and replaced with a BackendError.
"""


class VideoStoreError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VideoStoreError):
    """Bad or missing request input."""

    status_code = 400
    default_message = "Invalid request."


class NotFoundError(VideoStoreError):
    """The named object does not exist in the bucket."""

    status_code = 404
    default_message = "Video not found."


class PayloadTooLargeError(VideoStoreError):
    """Upload exceeded the configured size cap."""

    status_code = 413
    default_message = "Uploaded file is too large."


class BackendError(VideoStoreError):
    """Storage provider failed (network, auth, quota...)."""

    status_code = 500
    default_message = "Storage backend error."


class BackendTimeoutError(BackendError):
    """Storage provider did not answer within the configured timeout."""

    status_code = 504
    default_message = "Storage backend timed out."
