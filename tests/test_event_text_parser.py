"""
Tests for flyer text parsing
"""

import unittest
import sys
import os
from datetime import date

# Add project root to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from scripts.event_text_parser import EventTextParser, ParsedEventDraft, parse_event_text

TODAY = date(2025, 1, 15)

class TestDateShapes(unittest.TestCase):
    """Every supported date shape lands on the same calendar date"""

    def setUp(self):
        self.parser = EventTextParser(today=TODAY)

    def assertStartDate(self, text, expected):
        draft = self.parser.parse(text)
        self.assertEqual(draft.start_date, expected, text)
        self.assertEqual(draft.end_date, expected, text)

    def test_month_name_with_ordinal(self):
        self.assertStartDate('Spring Wine Walk\nMarch 15th, 2025', date(2025, 3, 15))

    def test_two_digit_year_below_fifty(self):
        self.assertStartDate('Harvest Dinner\n3/15/25', date(2025, 3, 15))

    def test_two_digit_year_from_fifty_up(self):
        self.assertStartDate('Class Reunion\n6/1/75', date(1975, 6, 1))

    def test_weekday_prefixed(self):
        self.assertStartDate('Barrel Tasting\nWed, Mar 15 2025', date(2025, 3, 15))

    def test_full_weekday_and_month(self):
        self.assertStartDate('Gala\nSaturday, March 15, 2025', date(2025, 3, 15))

    def test_slash_four_digit_year(self):
        self.assertStartDate('Gala\n03/15/2025', date(2025, 3, 15))

    def test_dash(self):
        self.assertStartDate('Gala\n3-15-2025', date(2025, 3, 15))

    def test_iso(self):
        self.assertStartDate('Gala\n2025-03-15', date(2025, 3, 15))

    def test_dot(self):
        self.assertStartDate('Gala\n3.15.2025', date(2025, 3, 15))

    def test_day_of_month(self):
        self.assertStartDate('Fete\n15th of March 2025', date(2025, 3, 15))

    def test_words_around_slash_date_use_manual_match(self):
        self.assertStartDate('Gala\nJoin us on 3/15/2025 at the hall', date(2025, 3, 15))

    def test_words_around_month_date_use_manual_match(self):
        self.assertStartDate('Gala\nCome celebrate March 15, 2025 downtown', date(2025, 3, 15))

class TestYearInference(unittest.TestCase):
    """Dates without a year are placed on or after today"""

    def test_all_day_marker(self):
        draft = parse_event_text('Holiday Market\nSat, Dec 25 All day', today=TODAY)
        self.assertTrue(draft.all_day)
        self.assertEqual(draft.start_date, date(2025, 12, 25))
        self.assertEqual(draft.end_date, date(2025, 12, 25))
        self.assertIsNone(draft.start_time)
        self.assertIsNone(draft.end_time)
        self.assertEqual(draft.name, 'Holiday Market')

    def test_past_date_rolls_to_next_year(self):
        draft = parse_event_text('Spring Fling\nMay 3', today=date(2025, 6, 1))
        self.assertEqual(draft.start_date, date(2026, 5, 3))

    def test_today_is_not_rolled(self):
        draft = parse_event_text('Spring Fling\nJune 1', today=date(2025, 6, 1))
        self.assertEqual(draft.start_date, date(2025, 6, 1))

    def test_explicit_past_year_is_kept(self):
        draft = parse_event_text('Retrospective\nMarch 15, 2020', today=TODAY)
        self.assertEqual(draft.start_date, date(2020, 3, 15))

class TestMultiDaySpans(unittest.TestCase):
    """A day range keeps its first day and the written year"""

    def test_day_range_with_year(self):
        for text in ('Fest\nMarch 15-17, 2025', 'Fest\nMarch 15 - 17, 2025', 'Fest\nMar 15–17 2025',
                     'Fest\nSaturday, March 15th-17th, 2025'):
            with self.subTest(text=text):
                draft = parse_event_text(text, today=TODAY)
                self.assertEqual(draft.start_date, date(2025, 3, 15))
                self.assertEqual(draft.end_date, date(2025, 3, 15))

    def test_day_range_without_year(self):
        draft = parse_event_text('Fest\nMarch 15-17', today=date(2025, 6, 1))
        self.assertEqual(draft.start_date, date(2026, 3, 15))

    def test_direct_parse_refuses_a_contradicting_year(self):
        parser = EventTextParser(today=TODAY)
        self.assertIsNone(parser._try_direct_parse('March 15-17, 2025'))
        self.assertEqual(parser._try_direct_parse('March 15, 2025'), date(2025, 3, 15))

class TestTitleAndTimes(unittest.TestCase):

    def test_title_lines_are_joined_and_collapsed(self):
        draft = parse_event_text('  Amador   County\nWine  Festival\nMarch 15, 2025', today=TODAY)
        self.assertEqual(draft.name, 'Amador County Wine Festival')

    def test_first_line_is_name_when_date_is_first(self):
        draft = parse_event_text('March 15, 2025\nSomething else', today=TODAY)
        self.assertEqual(draft.name, 'March 15, 2025')

    def test_time_range(self):
        draft = parse_event_text('Jazz Night\nFriday, June 6, 2025 7:00 PM - 10:00 PM', today=TODAY)
        self.assertEqual(draft.start_time, '19:00')
        self.assertEqual(draft.end_time, '22:00')
        self.assertEqual(draft.start_date, date(2025, 6, 6))

    def test_start_time_only(self):
        draft = parse_event_text('Brunch\nApril 5, 2025 11:30am', today=TODAY)
        self.assertEqual(draft.start_time, '11:30')
        self.assertIsNone(draft.end_time)
        self.assertEqual(draft.start_date, date(2025, 4, 5))

    def test_en_dash_range_without_meridiem(self):
        draft = parse_event_text('Open House\nApril 5, 2025 10:00–14:00', today=TODAY)
        self.assertEqual((draft.start_time, draft.end_time), ('10:00', '14:00'))

    def test_times_on_other_lines_are_ignored(self):
        draft = parse_event_text('Open House\nApril 5, 2025\n10:00 - 2:00 PM', today=TODAY)
        self.assertIsNone(draft.start_time)
        self.assertIsNone(draft.end_time)

class TestFallbacks(unittest.TestCase):
    """Degrades to empty fields, never raises"""

    def test_fallback_scan_finds_day_month_line(self):
        # The first scan matched nothing, so every line was collected into the name
        draft = parse_event_text('Harvest Fair\nSaturday 15 March', today=TODAY)
        self.assertEqual(draft.start_date, date(2025, 3, 15))
        self.assertEqual(draft.name, 'Harvest Fair Saturday 15 March')

    def test_no_date_anywhere(self):
        draft = parse_event_text('Just a title\nAnother line', today=TODAY)
        self.assertIsNone(draft.start_date)
        self.assertIsNone(draft.end_date)
        self.assertIsNone(draft.start_time)
        self.assertEqual(draft.name, 'Just a title Another line')

    def test_unparseable_date_line(self):
        draft = parse_event_text('Festival\nHarvest 2025', today=TODAY)
        self.assertEqual(draft.name, 'Festival')
        self.assertIsNone(draft.start_date)
        self.assertIsNone(draft.end_date)

    def test_empty_text(self):
        draft = parse_event_text('', today=TODAY)
        self.assertEqual(draft, ParsedEventDraft())
        self.assertEqual(draft.name, '')
        self.assertFalse(draft.all_day)

    def test_none_text(self):
        self.assertEqual(parse_event_text(None, today=TODAY).name, '')

class TestDraftShape(unittest.TestCase):

    def test_defaults_and_wire_form(self):
        draft = parse_event_text('Jazz Night\nJune 6, 2025 7:00 PM - 10:00 PM', today=TODAY)
        self.assertEqual(draft.to_dict(), {
            'name': 'Jazz Night',
            'start_date': '2025-06-06',
            'end_date': '2025-06-06',
            'start_time': '19:00',
            'end_time': '22:00',
            'all_day': False,
            'location': None,
            'website_url': None,
            'recurrence': 'Annual',
            'status': 'draft',
        })

    def test_crlf_input(self):
        draft = parse_event_text('Gala\r\n\r\nMarch 15, 2025\r\n', today=TODAY)
        self.assertEqual(draft.name, 'Gala')
        self.assertEqual(draft.start_date, date(2025, 3, 15))

if __name__ == '__main__':
    unittest.main()
