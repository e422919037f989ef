class LeadDashboardError(Exception):
    """Base class for all lead-dashboard domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except LeadDashboardError`` clause can catch any domain
    error.
    """

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class AuthError(LeadDashboardError):
    """Raised when a credential exchange or session call fails."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(detail)


class NotAuthenticatedError(LeadDashboardError):
    """Raised when a request carries no usable session."""

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(detail)


class PermissionDeniedError(LeadDashboardError):
    """Raised when the signed-in role may not perform an operation."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(detail)


class ProfileNotFoundError(LeadDashboardError):
    """Raised when an identity has no profile record yet.

    This is the one error that is recovered silently: the session
    resolver provisions a default profile when it sees it.
    """

    def __init__(self, detail: str = "Profile not found"):
        super().__init__(detail)


class ProfileFetchTimeoutError(LeadDashboardError):
    """Raised when the role lookup does not answer within the timeout."""

    def __init__(self, detail: str = "Profile lookup timed out"):
        super().__init__(detail)


class StoreError(LeadDashboardError):
    """Raised when a read or write against the lead/profile store fails."""

    def __init__(self, detail: str = "Data store unavailable"):
        super().__init__(detail)


class ImportValidationError(LeadDashboardError):
    """Raised when an uploaded CSV yields no importable leads."""

    def __init__(self, detail: str = "No valid leads found in the CSV file"):
        super().__init__(detail)


class LeadNotFoundError(LeadDashboardError):
    """Raised when a requested lead does not exist."""

    def __init__(self, detail: str = "Lead not found"):
        super().__init__(detail)


class AgentNotFoundError(LeadDashboardError):
    """Raised when a requested agent (BDA profile) does not exist."""

    def __init__(self, detail: str = "Agent not found"):
        super().__init__(detail)
