"""Pydantic schemas package – re-exports for convenience."""

# Common enums
from app.schemas.common import (
    AuthState as AuthState,
    UserRole as UserRole,
    LeadStatus as LeadStatus,
    LeadTemperature as LeadTemperature,
    LeadInterest as LeadInterest,
    FollowUpBucket as FollowUpBucket,
    LeadSortKey as LeadSortKey,
    SortDirection as SortDirection,
    SuccessResponse as SuccessResponse,
)

# Lead schemas
from app.schemas.lead import (
    LeadOut as LeadOut,
    LeadCreate as LeadCreate,
    LeadUpdate as LeadUpdate,
    LeadAssignRequest as LeadAssignRequest,
    LeadAssignResponse as LeadAssignResponse,
    LeadImportResponse as LeadImportResponse,
)

# Profile / agent schemas
from app.schemas.agent import (
    ProfileOut as ProfileOut,
    AgentPerformance as AgentPerformance,
)

# Session schemas
from app.schemas.auth import (
    LoginRequest as LoginRequest,
    LoginResponse as LoginResponse,
    IdentityOut as IdentityOut,
    SessionStateOut as SessionStateOut,
)

# Follow-up schemas
from app.schemas.follow_up import (
    FollowUpEvent as FollowUpEvent,
    FollowUpCounts as FollowUpCounts,
    CalendarResponse as CalendarResponse,
    NotificationSet as NotificationSet,
)

# Dashboard schemas
from app.schemas.dashboard import (
    DateRange as DateRange,
    ActivityItem as ActivityItem,
    DashboardMetrics as DashboardMetrics,
    AdminOverview as AdminOverview,
    DailyActivity as DailyActivity,
    ActivityReport as ActivityReport,
)
