#!/usr/bin/env python3
"""
CONSOLIDATED UTILITIES
Reusable field helpers shared by every resource module of the console
"""

import math
import re
from datetime import date, datetime
from typing import Iterable, List, Optional

# Apostrophes and backticks are dropped before slugging ("St. Mary's" -> "st-marys")
_APOSTROPHES = re.compile(r"['`‘’]")
_NON_ALNUM_RUN = re.compile(r'[^a-z0-9]+')

def slugify(value: Optional[str]) -> str:
    """
    Convert a name into a URL-friendly slug.

    Lowercases, strips apostrophes and backticks, collapses every run of
    non-alphanumeric characters into one hyphen and trims hyphens from both
    ends.

    Examples:
        slugify("Hello World")        -> "hello-world"
        slugify("St. Mary's Winery")  -> "st-marys-winery"
        slugify("---test---")         -> "test"
    """
    if not value:
        return ''

    slug = value.lower().strip()
    slug = _APOSTROPHES.sub('', slug)
    slug = _NON_ALNUM_RUN.sub('-', slug)
    return slug.strip('-')

def generate_unique_slug(base_slug: str, existing_slugs: Iterable[str], exclude_slug: Optional[str] = None,
                         max_attempts: int = 100) -> str:
    """
    Return base_slug, or base_slug-2, base_slug-3, ... whichever is free.

    Args:
        base_slug: Desired slug
        existing_slugs: Slugs already taken (soft-deleted rows included)
        exclude_slug: Slug of the record being edited, treated as free

    Raises:
        ValueError: If base_slug is blank or no free slug is found
    """
    base_slug = (base_slug or '').strip()
    if not base_slug:
        raise ValueError('Base slug cannot be empty')

    taken = {slug for slug in existing_slugs if slug and slug != exclude_slug}
    if base_slug not in taken:
        return base_slug

    for counter in range(2, max_attempts + 2):
        candidate = f"{base_slug}-{counter}"
        if candidate not in taken:
            return candidate

    raise ValueError(f'Could not find unique slug after {max_attempts} attempts')

def normalize_url(value: Optional[str]) -> Optional[str]:
    """Prefix https:// when the URL has no scheme; blank input becomes None"""
    if not value:
        return None
    cleaned = str(value).strip()
    if not cleaned:
        return None
    if re.match(r'^https?://', cleaned, re.IGNORECASE):
        return cleaned
    return f'https://{cleaned}'

def clean_text_field(value):
    """Clean text fields by collapsing whitespace; blank becomes None"""
    if value is None:
        return None

    cleaned = re.sub(r'\s+', ' ', str(value)).strip()
    return cleaned if cleaned else None

def clean_multiline_field(value):
    """Like clean_text_field but keeps line breaks (descriptions, notes, OCR text)"""
    if value is None:
        return None

    cleaned = str(value).replace('\r\n', '\n').replace('\r', '\n').strip()
    return cleaned if cleaned else None

def clean_numeric_field(value):
    """Clean numeric fields (durations, coordinates, etc.)"""
    if value is None or value == '':
        return None

    try:
        cleaned = str(value).strip()
        if not cleaned:
            return None
        number = float(cleaned)
    except (ValueError, TypeError):
        return None
    return number if math.isfinite(number) else None

def clean_integer_field(value):
    """Clean integer fields (sort_order, priority, etc.); "1.5" is not an integer"""
    number = clean_numeric_field(value)
    if number is None or not number.is_integer():
        return None
    return int(number)

def parse_iso_date(value) -> Optional[date]:
    """Parse a YYYY-MM-DD string (or pass a date through); anything else is None"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not re.match(r'^\d{4}-\d{2}-\d{2}$', text):
        return None
    try:
        return datetime.strptime(text, '%Y-%m-%d').date()
    except ValueError:
        return None

def parse_bool_field(value) -> bool:
    """CSV and form booleans: true/1/yes/on are True, everything else False"""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('true', '1', 'yes', 'y', 'on')

def clean_keyword_list(value) -> List[str]:
    """
    Keywords from a list or a comma-separated string.

    Each keyword is trimmed and lowercased; blanks and repeats are dropped,
    first occurrence order is kept.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(',')

    keywords = []
    for item in value:
        keyword = re.sub(r'\s+', ' ', str(item or '')).strip().lower()
        if keyword and keyword not in keywords:
            keywords.append(keyword)
    return keywords
