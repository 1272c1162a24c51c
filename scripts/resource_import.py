#!/usr/bin/env python3
"""
CSV import/export schemas for the locations, events and routes tables.

Each resource declares its export headers, template sample rows, header
aliases and a row coercer. build_import_preview runs a parsed grid through
the coercer and collects row-indexed errors; any error blocks the import.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from scripts.csv_codec import CsvFormatError, grid_to_records, require_data_rows, to_csv, validate_csv_headers
from scripts.draft_rules import EVENT_STATUSES
from scripts.time_utils import is_canonical_time, normalize_time
from scripts.utils import (clean_integer_field, clean_keyword_list, clean_multiline_field, clean_text_field,
                           normalize_url, parse_bool_field, parse_iso_date, slugify)

logger = logging.getLogger(__name__)

ROUTE_DIFFICULTIES = ('easy', 'moderate', 'challenging')


@dataclass
class ResourceSchema:
    """How one table maps to and from CSV"""
    resource: str
    headers: List[str]
    coerce_row: Callable[[Dict[str, str], int], tuple]
    aliases: Dict[str, str] = field(default_factory=dict)
    template_rows: List[Dict[str, Any]] = field(default_factory=list)
    required_headers: List[str] = field(default_factory=lambda: ['name'])

    @property
    def export_filename(self) -> str:
        return f'{self.resource}-export.csv'

    @property
    def template_filename(self) -> str:
        return f'{self.resource}-template.csv'

    def template_csv(self) -> str:
        return to_csv(self.template_rows, self.headers)


@dataclass
class ImportPreview:
    """Coerced records plus every validation error found"""
    records: List[Dict[str, Any]]
    errors: List[str]

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self):
        return {
            'records': [_jsonable(record) for record in self.records],
            'errors': self.errors,
            'count': len(self.records),
        }


def _jsonable(record: Dict[str, Any]) -> Dict[str, Any]:
    return {key: (value.isoformat() if hasattr(value, 'isoformat') else value) for key, value in record.items()}


def _status(raw: str) -> str:
    status = (raw or '').strip().lower()
    return status if status in EVENT_STATUSES else 'draft'


def _name_and_slug(row: Dict[str, str], row_number: int, errors: List[str]):
    name = clean_text_field(row.get('name')) or ''
    slug = slugify(row.get('slug')) or slugify(name)
    if not name:
        errors.append(f'Row {row_number}: name is required')
    if not slug:
        errors.append(f'Row {row_number}: slug missing (cannot derive)')
    return name, slug


def _sort_order(raw: Optional[str], row_number: int, errors: List[str]) -> Optional[int]:
    if not raw:
        return None
    value = clean_integer_field(raw)
    if value is None:
        errors.append(f'Row {row_number}: sort_order must be an integer')
    return value


def _coerce_location(row: Dict[str, str], row_number: int):
    errors = []
    name, slug = _name_and_slug(row, row_number, errors)
    record = {
        'name': name,
        'slug': slug,
        'region': clean_text_field(row.get('region')),
        'short_description': clean_multiline_field(row.get('short_description')),
        'website_url': normalize_url(row.get('website_url')),
        'status': _status(row.get('status')),
        'sort_order': _sort_order(row.get('sort_order'), row_number, errors),
    }
    return record, errors


def _coerce_route(row: Dict[str, str], row_number: int):
    errors = []
    name, slug = _name_and_slug(row, row_number, errors)

    duration = None
    raw_duration = row.get('duration_minutes')
    if raw_duration:
        try:
            duration = float(raw_duration)
        except ValueError:
            duration = None
        if duration is None or not math.isfinite(duration):
            errors.append(f'Row {row_number}: duration_minutes must be a number')
            duration = None
        elif duration.is_integer():
            duration = int(duration)

    difficulty = (row.get('difficulty') or '').strip().lower() or None
    if difficulty and difficulty not in ROUTE_DIFFICULTIES:
        errors.append(f'Row {row_number}: difficulty must be easy|moderate|challenging')

    record = {
        'name': name,
        'slug': slug,
        'duration_minutes': duration,
        'start_point': clean_text_field(row.get('start_point')),
        'end_point': clean_text_field(row.get('end_point')),
        'difficulty': difficulty,
        'notes': clean_multiline_field(row.get('notes')),
        'status': _status(row.get('status')),
        'sort_order': _sort_order(row.get('sort_order'), row_number, errors),
    }
    return record, errors


def _coerce_event(row: Dict[str, str], row_number: int):
    errors = []
    name, slug = _name_and_slug(row, row_number, errors)

    dates = {}
    for key in ('start_date', 'end_date'):
        raw = row.get(key)
        dates[key] = parse_iso_date(raw)
        if raw and dates[key] is None:
            errors.append(f'Row {row_number}: {key} must be YYYY-MM-DD')
    start_date = dates['start_date']
    end_date = dates['end_date'] or start_date
    if start_date and end_date and end_date < start_date:
        errors.append(f'Row {row_number}: end_date is before start_date')

    start_time = normalize_time(row.get('start_time'))
    end_time = normalize_time(row.get('end_time'), is_end_time=True, companion_time=start_time)
    for key, value in (('start_time', start_time), ('end_time', end_time)):
        if value and not is_canonical_time(value):
            errors.append(f'Row {row_number}: {key} "{value}" is not a recognizable time')

    record = {
        'name': name,
        'slug': slug,
        'host_org': clean_text_field(row.get('host_org')),
        'start_date': start_date,
        'end_date': end_date,
        'start_time': start_time,
        'end_time': end_time,
        'location': clean_text_field(row.get('location')),
        'recurrence': clean_text_field(row.get('recurrence')),
        'website_url': normalize_url(row.get('website_url')),
        'status': _status(row.get('status')),
        'sort_order': _sort_order(row.get('sort_order'), row_number, errors),
        'keywords': clean_keyword_list(row.get('keywords')),
        'is_signature_event': parse_bool_field(row.get('is_signature_event')),
        'all_day': parse_bool_field(row.get('all_day')),
    }
    return record, errors


SCHEMAS = {
    'locations': ResourceSchema(
        resource='locations',
        headers=['name', 'slug', 'region', 'short_description', 'website_url', 'status', 'sort_order'],
        coerce_row=_coerce_location,
        aliases={
            'location': 'name',
            'location name': 'name',
            'title': 'name',
            'description': 'short_description',
            'website': 'website_url',
            'url': 'website_url',
            'sort': 'sort_order',
            'order': 'sort_order',
        },
        template_rows=[
            {
                'name': 'Sample Winery Name',
                'slug': 'sample-winery-name',
                'region': 'Napa Valley',
                'short_description': 'A beautiful winery with stunning views',
                'website_url': 'https://example.com',
                'status': 'draft',
                'sort_order': 100,
            },
            {
                'name': 'Another Winery',
                'slug': 'another-winery',
                'region': 'Sonoma County',
                'short_description': 'Family-owned winery specializing in Pinot Noir',
                'website_url': 'https://another-winery.com',
                'status': 'published',
                'sort_order': 200,
            },
        ],
    ),
    'events': ResourceSchema(
        resource='events',
        headers=['name', 'slug', 'host_org', 'start_date', 'end_date', 'start_time', 'end_time', 'location',
                 'recurrence', 'website_url', 'status', 'sort_order', 'keywords', 'is_signature_event', 'all_day'],
        coerce_row=_coerce_event,
        aliases={
            'event name': 'name',
            'event title': 'name',
            'title': 'name',
            'event date': 'start_date',
            'date': 'start_date',
            'start date': 'start_date',
            'end date': 'end_date',
            'start time': 'start_time',
            'end time': 'end_time',
            'event location': 'location',
            'venue': 'location',
            'website': 'website_url',
            'url': 'website_url',
            'event status': 'status',
            'host': 'host_org',
            'signature': 'is_signature_event',
            'tags': 'keywords',
            'all day': 'all_day',
        },
    ),
    'routes': ResourceSchema(
        resource='routes',
        headers=['name', 'slug', 'duration_minutes', 'start_point', 'end_point', 'difficulty', 'notes', 'status',
                 'sort_order'],
        coerce_row=_coerce_route,
        aliases={
            'title': 'name',
            'route': 'name',
            'start': 'start_point',
            'start point': 'start_point',
            'end': 'end_point',
            'end point': 'end_point',
            'duration': 'duration_minutes',
            'minutes': 'duration_minutes',
            'difficulty_level': 'difficulty',
            'desc': 'notes',
            'description': 'notes',
            'sort': 'sort_order',
            'order': 'sort_order',
        },
        template_rows=[
            {
                'name': 'Gold Country Scenic Loop',
                'slug': 'gold-country-scenic-loop',
                'duration_minutes': 180,
                'start_point': 'Fiddletown',
                'end_point': 'Fiddletown',
                'difficulty': 'moderate',
                'notes': 'Gentle climbs, great views.',
                'status': 'draft',
                'sort_order': 1000,
            }
        ],
    ),
}


def get_schema(resource: str) -> ResourceSchema:
    try:
        return SCHEMAS[resource]
    except KeyError:
        raise KeyError(f'Unknown resource: {resource}') from None


def build_import_preview(resource: str, grid: Sequence[Sequence[str]]) -> ImportPreview:
    """
    Coerce and validate an uploaded grid.

    Row numbers in messages count the header as row 1, so the first data
    row is "Row 2" as in a spreadsheet. A header row without the required
    columns is reported as the only error.

    Raises:
        CsvFormatError: fewer than two rows
    """
    schema = get_schema(resource)
    require_data_rows(grid)

    header_errors = validate_csv_headers([schema.aliases.get(h.strip().lower(), h) for h in grid[0]],
                                         schema.required_headers)
    if header_errors:
        logger.info(f"Import preview for {resource} rejected: {header_errors[0]}")
        return ImportPreview(records=[], errors=header_errors)

    rows = grid_to_records(grid, schema.aliases)
    records, errors = [], []
    seen_slugs = {}

    for index, row in enumerate(rows):
        row_number = index + 2
        record, row_errors = schema.coerce_row(row, row_number)
        slug = record.get('slug')
        if slug:
            if slug in seen_slugs:
                row_errors.append(f'Row {row_number}: duplicate slug "{slug}" (also on row {seen_slugs[slug]})')
            else:
                seen_slugs[slug] = row_number
        records.append(record)
        errors.extend(row_errors)

    logger.info(f"Import preview for {resource}: {len(records)} rows, {len(errors)} errors")
    return ImportPreview(records=records, errors=errors)


__all__ = ['SCHEMAS', 'ImportPreview', 'ResourceSchema', 'CsvFormatError', 'build_import_preview', 'get_schema']
