class PdfDashboardError(Exception):
    """Base class."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PdfDashboardError):
    status_code = 400


class AccessError(PdfDashboardError):
    """Storage refused the operation, usually a bucket policy misconfiguration."""

    status_code = 403
    needs_setup = True


class NotFoundError(PdfDashboardError):
    status_code = 404


class BackendError(PdfDashboardError):
    pass


# Raised by storage backends, translated by the services.
class StorageError(Exception):
    pass


class StorageAccessError(StorageError):
    def __init__(self, message: str, policy: bool = False):
        super().__init__(message)
        self.policy = policy


class ObjectExistsError(StorageError):
    pass


POLICY_MARKERS = ("row-level security", "policy", "accessdenied", "permission")


def is_policy_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in POLICY_MARKERS)
