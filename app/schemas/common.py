from enum import Enum
from pydantic import BaseModel


class UserRole(str, Enum):
    admin = "admin"
    bda = "bda"


class LeadStatus(str, Enum):
    new = "new"
    contacted = "contacted"
    qualified = "qualified"
    proposal = "proposal"
    negotiation = "negotiation"
    closed_won = "closed_won"
    closed_lost = "closed_lost"


class LeadTemperature(str, Enum):
    hot = "hot"
    warm = "warm"
    cold = "cold"
    unset = "unset"


class LeadInterest(str, Enum):
    website = "website"
    app = "app"
    crm = "crm"
    both = "both"


class FollowUpBucket(str, Enum):
    overdue = "overdue"
    today = "today"
    upcoming = "upcoming"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


class LeadSortKey(str, Enum):
    name = "name"
    status = "status"
    created_at = "created_at"
    updated_at = "updated_at"
    follow_up_date = "follow_up_date"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    success: bool = True


class AuthState(str, Enum):
    idle = "idle"
    authenticating = "authenticating"
    authenticated_role_pending = "authenticated_role_pending"
    authenticated = "authenticated"
    unauthenticated = "unauthenticated"
