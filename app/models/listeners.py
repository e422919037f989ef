from datetime import datetime, timezone
from sqlalchemy import event

from app.models.lead import Lead
from app.models.profile import Profile


# Auto updated_at
@event.listens_for(Lead, "before_update")
@event.listens_for(Profile, "before_update")
def update_timestamp(mapper, connection, target):
    target.updated_at = datetime.now(timezone.utc)
