"""CSV import/export for the admin lead table."""

import logging
from datetime import date, datetime
from io import StringIO
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import pandas as pd
from pydantic import ValidationError

from app.core.constants import (
    CSV_COLUMNS,
    CSV_EXPORT_FILENAME,
    CSV_FLAG_COLUMNS,
    LEAD_INTERESTS,
    LEAD_STATUSES,
    UNASSIGNED_LABEL,
)
from app.core.exceptions import ImportValidationError
from app.schemas.common import LeadInterest, LeadStatus, LeadTemperature
from app.schemas.lead import LeadCreate, LeadOut

logger = logging.getLogger(__name__)

_ENCODINGS = ("utf-8-sig", "utf-8", "latin-1")
_KNOWN_TEMPERATURES = {t.value for t in LeadTemperature} - {LeadTemperature.unset.value}


def _decode(payload: bytes) -> str:
    for encoding in _ENCODINGS:
        try:
            return payload.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ImportValidationError("Unable to decode file. Please check file encoding.")


def _cell(row: Dict[str, str], column: str) -> str:
    value = row.get(column)
    return value.strip() if isinstance(value, str) else ""


def _parse_datetime(value: str) -> Optional[datetime]:
    """Parse a timestamp cell; ``None`` when blank or malformed."""
    if not value:
        return None
    parsed = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def _parse_status(value: str) -> LeadStatus:
    value = value.lower()
    return LeadStatus(value) if value in LEAD_STATUSES else LeadStatus.new


def _parse_temperature(value: str) -> LeadTemperature:
    value = value.lower()
    if value in _KNOWN_TEMPERATURES:
        return LeadTemperature(value)
    return LeadTemperature.unset


def _parse_interests(value: str) -> List[LeadInterest]:
    interests: List[LeadInterest] = []
    for part in value.split(","):
        part = part.strip().lower()
        if part in LEAD_INTERESTS and LeadInterest(part) not in interests:
            interests.append(LeadInterest(part))
    return interests


def _parse_flag(value: str) -> bool:
    return value.lower() == "true"


def parse_leads_csv(payload: bytes, now: datetime) -> Tuple[List[LeadCreate], int]:
    """Turn an uploaded CSV into validated lead rows.

    Rows without a ``Lead Name``, or with a cell too long for its column,
    are dropped.  Returns the valid rows and the number of dropped rows;
    raises ``ImportValidationError`` when nothing valid is left, so the
    caller never replaces the collection with an empty one.
    """
    text = _decode(payload)
    try:
        frame = pd.read_csv(
            StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise ImportValidationError(f"Error parsing CSV file: {exc}") from exc

    frame.columns = frame.columns.str.strip()

    leads: List[LeadCreate] = []
    skipped = 0
    for line, row in enumerate(frame.to_dict(orient="records"), start=2):
        name = _cell(row, "Lead Name")
        if not name:
            skipped += 1
            continue
        try:
            lead = LeadCreate(
                name=name,
                phone=_cell(row, "Phone"),
                email=_cell(row, "Email"),
                industry=_cell(row, "Industry"),
                service=_cell(row, "Service"),
                lead_type=_cell(row, "Type"),
                status=_parse_status(_cell(row, "Status")),
                follow_up_date=_parse_datetime(_cell(row, "Follow-up Date")),
                temperature=_parse_temperature(_cell(row, "Temperature")),
                interests=_parse_interests(_cell(row, "Interests")),
                remarks=_cell(row, "Remarks"),
                created_at=_parse_datetime(_cell(row, "Created At")) or now,
                updated_at=_parse_datetime(_cell(row, "Updated At")) or now,
                **{
                    field: _parse_flag(_cell(row, column))
                    for column, field in CSV_FLAG_COLUMNS.items()
                },
            )
        except ValidationError as exc:
            logger.warning("CSV row %d rejected: %s", line, exc.errors()[0]["msg"])
            skipped += 1
            continue
        leads.append(lead)

    if not leads:
        raise ImportValidationError()
    if skipped:
        logger.info("CSV import dropped %d invalid row(s)", skipped)
    return leads, skipped


def export_filename(today: date) -> str:
    return CSV_EXPORT_FILENAME.format(date=today.isoformat())


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def export_leads_csv(
    leads: Iterable[LeadOut],
    agent_names: Dict[UUID, str],
    today: date,
) -> Tuple[str, str]:
    """Render *leads* as CSV text; returns ``(filename, text)``."""
    records = []
    for lead in leads:
        if lead.assigned_agent_id is None:
            agent = UNASSIGNED_LABEL
        else:
            agent = agent_names.get(lead.assigned_agent_id, str(lead.assigned_agent_id))
        record = {
            "Lead Name": lead.name,
            "Phone": lead.phone,
            "Email": lead.email,
            "Industry": lead.industry,
            "Service": lead.service,
            "Type": lead.lead_type,
            "Status": lead.status.value,
            "Assigned BDA": agent,
            "Follow-up Date": _iso(lead.follow_up_date),
            "Temperature": (
                ""
                if lead.temperature == LeadTemperature.unset
                else lead.temperature.value
            ),
            "Interests": ", ".join(interest.value for interest in lead.interests),
            "Remarks": lead.remarks,
            "Created At": _iso(lead.created_at),
            "Updated At": _iso(lead.updated_at),
        }
        for column, field in CSV_FLAG_COLUMNS.items():
            record[column] = "true" if getattr(lead, field) else "false"
        records.append(record)

    frame = pd.DataFrame(records, columns=CSV_COLUMNS)
    return export_filename(today), frame.to_csv(index=False)
