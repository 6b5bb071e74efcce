# projects/timeline.py

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from .models import ProjectTimeline


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _jsonable(value):
    """Make metadata safe for a JSONField: Decimals as strings, dates as ISO."""
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def record_event(project, event_type, title, description='', actor_id='', actor_role='system', metadata=None):
    """
    Append one entry to the project's timeline.

    Must be called inside the same transaction as the change it describes.
    """
    return ProjectTimeline.objects.create(
        project=project,
        event_type=event_type,
        title=title,
        description=description,
        created_by_id=str(actor_id or ''),
        created_by_role=actor_role or 'system',
        metadata=_jsonable(metadata) if metadata is not None else None,
    )


def get_project_timeline(project, limit=None):
    entries = ProjectTimeline.objects.filter(project=project).order_by('-created_at', '-id')
    if limit:
        entries = entries[:limit]
    return list(entries)
