#!/usr/bin/env python3
"""
Event Text Parser
Turns raw OCR text from an event flyer into an editable event draft
(name, dates, times, all-day flag). Extraction is best effort: anything
that cannot be read is left empty for the operator to fill in.
"""

import re
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple

from dateutil import parser as date_parser

from scripts.time_utils import convert_meridiem_time

logger = logging.getLogger(__name__)

MONTHS = r'(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*'
WEEKDAYS = r'(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)[a-z]*'
MONTH_ABBREVIATIONS = ['jan', 'feb', 'mar', 'apr', 'may', 'jun', 'jul', 'aug', 'sep', 'oct', 'nov', 'dec']

MIN_YEAR = 1900
MAX_YEAR = 2100

# Multi-day spans ("March 15-17") are read as their first day
DAY_RANGE_RE = re.compile(
    rf'\b({MONTHS}\.?\s+\d{{1,2}})(?:st|nd|rd|th)?\s*[-–—]\s*\d{{1,2}}(?:st|nd|rd|th)?\b',
    re.IGNORECASE
)
FOUR_DIGIT_YEAR_RE = re.compile(r'\b(\d{4})\b')

@dataclass
class ParsedEventDraft:
    """Editable event draft produced from flyer text"""
    name: str = ''
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    all_day: bool = False
    location: Optional[str] = None
    website_url: Optional[str] = None
    recurrence: str = 'Annual'
    status: str = 'draft'

    def to_dict(self):
        return {
            'name': self.name,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'all_day': self.all_day,
            'location': self.location,
            'website_url': self.website_url,
            'recurrence': self.recurrence,
            'status': self.status,
        }


class _FlyerParserInfo(date_parser.parserinfo):
    """Two-digit years below 50 are 20xx, the rest 19xx"""

    def convertyear(self, year, century_specified=False):
        if year < 100 and not century_specified:
            return year + 2000 if year < 50 else year + 1900
        return year


class EventTextParser:
    """Extracts an event draft from multi-line flyer text"""

    def __init__(self, today: Optional[date] = None):
        self.today = today or date.today()
        self.date_patterns = self._compile_date_patterns()
        self.fallback_patterns = self._compile_fallback_patterns()
        self.time_range_pattern = re.compile(
            r'(\d{1,2}:\d{2}(?:\s*[AaPp][Mm])?)(?:\s*[-–—]\s*(\d{1,2}:\d{2}(?:\s*[AaPp][Mm])?))?'
        )
        self.parser_info = _FlyerParserInfo()

    def _compile_date_patterns(self) -> List[re.Pattern]:
        """Patterns that mark a line as the date line, tried in order"""
        patterns = [
            # Month name + day + year
            re.compile(rf'\b{MONTHS}\s+\d{{1,2}},?\s+\d{{4}}', re.IGNORECASE),
            re.compile(rf'\b{MONTHS}\s+\d{{1,2}}\s+\d{{4}}', re.IGNORECASE),
            # Numeric with four digit year
            re.compile(r'\b\d{1,2}/\d{1,2}/\d{4}'),
            re.compile(r'\b\d{1,2}-\d{1,2}-\d{4}'),
            re.compile(r'\b\d{4}-\d{1,2}-\d{1,2}'),
            re.compile(r'\b\d{1,2}\.\d{1,2}\.\d{4}'),
            # Weekday + month name + day + year
            re.compile(rf'\b{WEEKDAYS},?\s+{MONTHS}\s+\d{{1,2}},?\s+\d{{4}}', re.IGNORECASE),
            re.compile(rf'\b{WEEKDAYS},?\s+{MONTHS}\s+\d{{1,2}}\s+\d{{4}}', re.IGNORECASE),
            # Month name + day
            re.compile(rf'\b{MONTHS}\s+\d{{1,2}}', re.IGNORECASE),
            # Numeric with two or four digit year
            re.compile(r'\b\d{1,2}/\d{1,2}/\d{2,4}'),
            re.compile(r'\b\d{1,2}-\d{1,2}-\d{2,4}'),
            # Bare year
            re.compile(r'\b20\d{2}\b'),
            # Ordinals: "March 15th", "15th of March"
            re.compile(rf'\b{MONTHS}\s+\d{{1,2}}(?:st|nd|rd|th)?', re.IGNORECASE),
            re.compile(rf'\b\d{{1,2}}(?:st|nd|rd|th)?\s+of\s+{MONTHS}', re.IGNORECASE),
        ]
        return patterns

    def _compile_fallback_patterns(self) -> List[re.Pattern]:
        """Looser patterns for the second scan"""
        return [
            re.compile(r'\d{1,2}/\d{1,2}/\d{2,4}'),
            re.compile(r'\d{1,2}-\d{1,2}-\d{2,4}'),
            re.compile(r'\d{4}-\d{1,2}-\d{1,2}'),
            re.compile(rf'\b{MONTHS}\s+\d{{1,2}}', re.IGNORECASE),
            re.compile(rf'\d{{1,2}}\s+{MONTHS}', re.IGNORECASE),
        ]

    def parse(self, raw_text: Optional[str]) -> ParsedEventDraft:
        """Parse flyer text into a draft"""
        lines = [line.strip() for line in re.split(r'\r?\n', raw_text or '')]
        lines = [line for line in lines if line]

        date_line, title_lines = self._find_date_line(lines)

        name = ' '.join(title_lines) or (lines[0] if lines else '')
        name = re.sub(r'\s+', ' ', name).strip()

        all_day = bool(re.search(r'all\s*day', date_line, re.IGNORECASE))
        cleaned = re.sub(r',?\s*All\s*day', '', date_line, count=1, flags=re.IGNORECASE)
        cleaned = re.sub(r'\s{2,}', ' ', cleaned)
        cleaned = re.sub(r'\s*,\s*', ', ', cleaned).strip()

        start_time, end_time, date_text = self._extract_times(cleaned)

        start_date = self._parse_date(date_text) if date_text else None

        draft = ParsedEventDraft(
            name=name,
            start_date=start_date,
            end_date=start_date,
            start_time=start_time,
            end_time=end_time,
            all_day=all_day,
        )
        logger.debug(f"Parsed flyer text into draft: {draft}")
        return draft

    def _find_date_line(self, lines: List[str]) -> Tuple[str, List[str]]:
        """
        Locate the date line.

        Every line scanned by the first pass before a match is collected as a
        title line. When the first pass matches nothing, all lines have been
        collected, and the fallback pass does not revisit that list.
        """
        title_lines = []
        for line in lines:
            if any(pattern.search(line) for pattern in self.date_patterns):
                return line, title_lines
            title_lines.append(line)

        for line in lines:
            if any(pattern.search(line) for pattern in self.fallback_patterns):
                logger.debug(f"Date line found by fallback scan: {line!r}")
                return line, title_lines

        return '', title_lines

    def _extract_times(self, cleaned: str) -> Tuple[Optional[str], Optional[str], str]:
        """Pull the first time range out of the date line; returns the rest for date parsing"""
        match = self.time_range_pattern.search(cleaned)
        if not match:
            return None, None, cleaned

        start_time = convert_meridiem_time(match.group(1))
        end_time = convert_meridiem_time(match.group(2)) if match.group(2) else None

        remainder = (cleaned[:match.start()] + ' ' + cleaned[match.end():])
        remainder = re.sub(r'\s{2,}', ' ', remainder).strip(' ,-–—')
        return start_time, end_time, remainder

    def _date_attempts(self, text: str) -> List[str]:
        return [
            text,
            text.replace(',', ''),
            re.sub(r'\s+', ' ', text).strip(),
            re.sub(rf'\b{WEEKDAYS}\s*,?\s*', '', text, count=1, flags=re.IGNORECASE),
            re.sub(r'(?<=\d)(?:st|nd|rd|th)\b', '', text, flags=re.IGNORECASE),
            re.sub(r'\bof\s+', '', text, flags=re.IGNORECASE),
            re.sub(r'\s+', ' ', text).replace(',', '').strip(),
        ]

    def _parse_date(self, text: str) -> Optional[date]:
        """Direct parse attempts first, then the manual structural matchers"""
        text = DAY_RANGE_RE.sub(r'\1', text)
        for attempt in self._date_attempts(text):
            parsed = self._try_direct_parse(attempt)
            if parsed:
                return parsed

        parsed = self._manual_parse(text)
        if parsed is None:
            logger.debug(f"Failed to parse date from {text!r}")
        return parsed

    def _try_direct_parse(self, text: str) -> Optional[date]:
        """
        Parse with dateutil twice using defaults a year apart.

        A difference in year means the text had none, so the date is placed
        on or after today. A difference in month means the text had no month
        and is rejected.
        """
        if not text or not re.search(r'\d', text):
            return None

        base = datetime(self.today.year, 1, 1)
        shifted = datetime(self.today.year + 1, 2, 1)
        try:
            first = date_parser.parse(text, parserinfo=self.parser_info, default=base)
            second = date_parser.parse(text, parserinfo=self.parser_info, default=shifted)
        except (ValueError, OverflowError) as e:
            logger.debug(f"dateutil could not parse {text!r}: {e}")
            return None

        if first.month != second.month:
            return None
        if not MIN_YEAR < first.year < MAX_YEAR:
            return None
        written_years = {int(year) for year in FOUR_DIGIT_YEAR_RE.findall(text)}
        if written_years and first.year not in written_years:
            logger.debug(f"dateutil year {first.year} contradicts {text!r}")
            return None

        result = first.date()
        if first.year != second.year:
            result = self._roll_forward(result.month, result.day)
        return result

    def _roll_forward(self, month: int, day: int) -> Optional[date]:
        """A yearless date that already passed this year means next year"""
        for year in (self.today.year, self.today.year + 1):
            try:
                candidate = date(year, month, day)
            except ValueError:
                continue
            if candidate >= self.today:
                return candidate
        return None

    def _month_index(self, month_name: str) -> Optional[int]:
        prefix = month_name[:3].lower()
        if prefix in MONTH_ABBREVIATIONS:
            return MONTH_ABBREVIATIONS.index(prefix) + 1
        return None

    def _manual_parse(self, text: str) -> Optional[date]:
        slash_match = re.search(r'(\d{1,2})/(\d{1,2})/(\d{2,4})', text)
        if slash_match:
            month, day, year_text = slash_match.groups()
            year = int(year_text)
            if len(year_text) == 2:
                year = 2000 + year if year < 50 else 1900 + year
            try:
                return date(year, int(month), int(day))
            except ValueError:
                logger.debug(f"Slash date out of range: {slash_match.group(0)}")

        month_match = re.search(r'\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+(\d{1,2}),?\s+(\d{4})',
                                text, re.IGNORECASE)
        if month_match:
            month_name, day, year = month_match.groups()
            month = self._month_index(month_name)
            try:
                return date(int(year), month, int(day))
            except (TypeError, ValueError):
                logger.debug(f"Month date out of range: {month_match.group(0)}")

        # No year on the flyer at all
        yearless_match = re.search(r'\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b',
                                   text, re.IGNORECASE)
        if yearless_match:
            month = self._month_index(yearless_match.group(1))
            if month:
                return self._roll_forward(month, int(yearless_match.group(2)))

        return None


def parse_event_text(raw_text: Optional[str], today: Optional[date] = None) -> ParsedEventDraft:
    """Parse flyer text with a one-off parser"""
    return EventTextParser(today=today).parse(raw_text)
