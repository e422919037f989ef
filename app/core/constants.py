from typing import Dict, FrozenSet, List

from app.schemas.common import LeadInterest, LeadStatus, LeadTemperature, UserRole

LEAD_STATUSES: FrozenSet[str] = frozenset(s.value for s in LeadStatus)
LEAD_TEMPERATURES: FrozenSet[str] = frozenset(t.value for t in LeadTemperature)
LEAD_INTERESTS: FrozenSet[str] = frozenset(i.value for i in LeadInterest)
USER_ROLES: FrozenSet[str] = frozenset(r.value for r in UserRole)

LEAD_STATUS_CHECK_CLAUSE: str = (
    f"status IN ({', '.join(repr(s.value) for s in LeadStatus)})"
)
LEAD_TEMPERATURE_CHECK_CLAUSE: str = (
    f"temperature IN ({', '.join(repr(t.value) for t in LeadTemperature)})"
)
USER_ROLE_CHECK_CLAUSE: str = (
    f"role IN ({', '.join(repr(r.value) for r in UserRole)})"
)

DEFAULT_ROLE: UserRole = UserRole.bda

# Column order shared by CSV import and export
CSV_COLUMNS: List[str] = [
    "Lead Name",
    "Phone",
    "Email",
    "Industry",
    "Service",
    "Type",
    "Status",
    "Assigned BDA",
    "Follow-up Date",
    "Temperature",
    "Interests",
    "Remarks",
    "WhatsApp Sent",
    "Email Sent",
    "Quotation Sent",
    "Sample Work Sent",
    "Created At",
    "Updated At",
]

# CSV header -> lead attribute for the four action flags
CSV_FLAG_COLUMNS: Dict[str, str] = {
    "WhatsApp Sent": "whatsapp_sent",
    "Email Sent": "email_sent",
    "Quotation Sent": "quotation_sent",
    "Sample Work Sent": "sample_work_sent",
}

CSV_EXPORT_FILENAME: str = "leads_export_{date}.csv"
UNASSIGNED_LABEL: str = "Unassigned"

REPORT_WINDOWS: Dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}
