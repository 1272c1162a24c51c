#!/usr/bin/env python3
"""
DRAFT RECONCILIATION RULES
Cross-field rules applied whenever an event draft or event form is edited.
Every editing surface (OCR draft editor, manual event form) goes through
reconcile_edit so the rules live in exactly one place.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from scripts.time_utils import is_canonical_time, normalize_time
from scripts.utils import (clean_integer_field, clean_multiline_field, clean_text_field, normalize_url,
                           parse_iso_date, slugify)

logger = logging.getLogger(__name__)

EVENT_STATUSES = ('draft', 'published', 'archived')
TIME_FIELDS = ('start_time', 'end_time')
DEFAULT_SORT_ORDER = 1000


class DraftValidationError(ValueError):
    """A draft cannot be turned into an event record"""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__('; '.join(errors))


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def reconcile_edit(record: Dict[str, Any], field: str, value: Any, today: date, commit: bool = True,
                   derive_slug: bool = False, slug_overridden: bool = False) -> Dict[str, Any]:
    """
    Apply one field edit and the rules it triggers.

    Args:
        record: Current draft or form values (ISO date strings, HH:MM times)
        field: Edited field name
        value: New raw value
        today: Reference date; an end date equal to it counts as "not chosen yet"
        commit: False while the operator is still typing; time fields are then
            stored verbatim and normalized on the committing edit
        derive_slug: Regenerate the slug from the name (manual form only)
        slug_overridden: The operator typed a slug in this session

    Returns:
        A new record; the input is not modified.
    """
    updated = dict(record)

    if field == 'start_date':
        new_start = parse_iso_date(value)
        updated['start_date'] = _iso(new_start) if new_start else value
        if new_start:
            current_end = parse_iso_date(updated.get('end_date'))
            if current_end is None or current_end == today:
                updated['end_date'] = _iso(new_start)
            elif current_end < new_start:
                updated['end_date'] = _iso(new_start)
        return updated

    if field in TIME_FIELDS and not commit:
        updated[field] = value
        return updated

    if field == 'start_time':
        start = normalize_time(value, is_end_time=False)
        updated['start_time'] = start
        end = updated.get('end_time')
        if is_canonical_time(start) and is_canonical_time(end) and end < start:
            logger.debug(f"End time {end} precedes new start {start}, moving it up")
            updated['end_time'] = start
        return updated

    if field == 'end_time':
        start = updated.get('start_time')
        end = normalize_time(value, is_end_time=True, companion_time=start)
        if is_canonical_time(start) and is_canonical_time(end) and end < start:
            logger.debug(f"End time {end} precedes start {start}, clamping")
            end = start
        updated['end_time'] = end
        return updated

    updated[field] = value
    if field == 'name' and derive_slug and not slug_overridden:
        updated['slug'] = slugify(value)
    return updated


def build_event_payload(draft: Dict[str, Any], ocr_text: Optional[str] = None, status: Optional[str] = None,
                        sort_order: Optional[Any] = None,
                        default_sort_order: int = DEFAULT_SORT_ORDER) -> Dict[str, Any]:
    """
    Turn a confirmed draft into the field set of a new event record.

    The end date defaults to the start date, a blank slug is derived from
    the name and the raw OCR text is kept for reference.

    Raises:
        DraftValidationError: name missing, unusable dates or times
    """
    errors = []

    name = clean_text_field(draft.get('name'))
    if not name:
        errors.append('Event name is required')

    slug = slugify(draft.get('slug')) or slugify(name)
    if name and not slug:
        errors.append('Could not derive a slug from the event name')

    start_date = parse_iso_date(draft.get('start_date'))
    if draft.get('start_date') and start_date is None:
        errors.append(f"Invalid start date: {draft.get('start_date')}")
    end_date = parse_iso_date(draft.get('end_date'))
    if draft.get('end_date') and end_date is None:
        errors.append(f"Invalid end date: {draft.get('end_date')}")
    end_date = end_date or start_date
    if start_date and end_date and end_date < start_date:
        errors.append('End date cannot be before start date')

    times = {}
    for field in TIME_FIELDS:
        raw_time = draft.get(field)
        if raw_time and not is_canonical_time(raw_time):
            errors.append(f"Unrecognized {field.replace('_', ' ')}: {raw_time}")
        times[field] = raw_time or None

    resolved_sort = clean_integer_field(sort_order)
    if sort_order not in (None, '') and resolved_sort is None:
        errors.append(f'Sort order must be an integer: {sort_order}')

    if errors:
        raise DraftValidationError(errors)

    status = (status or draft.get('status') or 'draft').strip().lower()
    if status not in EVENT_STATUSES:
        status = 'draft'

    return {
        'name': name,
        'slug': slug,
        'host_org': clean_text_field(draft.get('host_org')),
        'description': clean_multiline_field(draft.get('description')),
        'start_date': start_date,
        'end_date': end_date,
        'start_time': times['start_time'],
        'end_time': times['end_time'],
        'all_day': bool(draft.get('all_day')),
        'location': clean_text_field(draft.get('location')),
        'recurrence': clean_text_field(draft.get('recurrence')) or 'Annual',
        'website_url': normalize_url(draft.get('website_url')),
        'ocr_text': clean_multiline_field(ocr_text),
        'status': status,
        'sort_order': resolved_sort if resolved_sort is not None else default_sort_order,
    }
