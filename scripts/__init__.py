"""
Processing modules for the Event Console
"""

from .csv_codec import CsvFormatError, parse_csv, to_csv
from .event_text_parser import EventTextParser, ParsedEventDraft, parse_event_text
from .time_utils import normalize_time

__all__ = ['CsvFormatError', 'EventTextParser', 'ParsedEventDraft', 'normalize_time', 'parse_csv',
           'parse_event_text', 'to_csv']
