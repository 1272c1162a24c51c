"""
Tests for time normalization
"""

import unittest
import sys
import os
from datetime import date

# Add project root to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from scripts.time_utils import (convert_meridiem_time, format_time_to_ampm, is_canonical_time, normalize_time,
                                today_local)

class TestNormalizeTime(unittest.TestCase):
    """Role-aware normalization to HH:MM"""

    def test_abbreviated_meridiem(self):
        cases = {
            '2p': '14:00',
            '9a': '09:00',
            '2:30p': '14:30',
            '12a': '00:00',
            '12p': '12:00',
            '11:45pm': '23:45',
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(normalize_time(raw), expected)

    def test_full_twelve_hour(self):
        self.assertEqual(normalize_time('2:30 PM'), '14:30')
        self.assertEqual(normalize_time('12:15 am'), '00:15')
        self.assertEqual(normalize_time('12:00 PM'), '12:00')
        self.assertEqual(normalize_time('7:05 p.m.'), '19:05')

    def test_bare_hour_with_letter_suffix(self):
        self.assertEqual(normalize_time('1P'), '13:00')
        self.assertEqual(normalize_time('9A'), '09:00')
        self.assertEqual(normalize_time('12A'), '00:00')
        self.assertEqual(normalize_time('12P'), '12:00')

    def test_twenty_four_hour_start_passes_through(self):
        self.assertEqual(normalize_time('14:30'), '14:30')
        self.assertEqual(normalize_time('9:05'), '09:05')
        self.assertEqual(normalize_time('00:00'), '00:00')

    def test_twenty_four_hour_small_end_hour_is_pm(self):
        self.assertEqual(normalize_time('9:00', is_end_time=True), '21:00')
        self.assertEqual(normalize_time('11:30', is_end_time=True), '23:30')
        self.assertEqual(normalize_time('12:00', is_end_time=True), '12:00')
        self.assertEqual(normalize_time('0:30', is_end_time=True), '00:30')
        self.assertEqual(normalize_time('16:00', is_end_time=True), '16:00')

    def test_bare_start_hour_stays_as_written(self):
        self.assertEqual(normalize_time('7'), '07:00')
        self.assertEqual(normalize_time('12'), '12:00')

    def test_bare_end_hour_without_companion_is_pm(self):
        self.assertEqual(normalize_time('7', is_end_time=True), '19:00')
        self.assertEqual(normalize_time('12', is_end_time=True), '12:00')

    def test_bare_end_hour_before_morning_start_is_pm(self):
        self.assertEqual(normalize_time('2', is_end_time=True, companion_time='09:00'), '14:00')

    def test_bare_end_hour_after_morning_start_stays_morning(self):
        self.assertEqual(normalize_time('10', is_end_time=True, companion_time='09:00'), '10:00')
        self.assertEqual(normalize_time('9', is_end_time=True, companion_time='09:00'), '09:00')

    def test_bare_end_hour_with_afternoon_start_is_pm(self):
        self.assertEqual(normalize_time('2', is_end_time=True, companion_time='14:00'), '14:00')
        self.assertEqual(normalize_time('5', is_end_time=True, companion_time='13:30'), '17:00')

    def test_unusable_companion_is_ignored(self):
        self.assertEqual(normalize_time('2', is_end_time=True, companion_time='noon'), '14:00')

    def test_unmatched_input_is_returned_unchanged(self):
        for raw in ('noon', '25:00', '7:75', '13p', '0', '13', 'tbd 7pm'):
            with self.subTest(raw=raw):
                self.assertEqual(normalize_time(raw), raw)

    def test_blank_input(self):
        self.assertIsNone(normalize_time(None))
        self.assertIsNone(normalize_time(''))
        self.assertIsNone(normalize_time('   '))

    def test_surrounding_whitespace_is_ignored(self):
        self.assertEqual(normalize_time('  2p '), '14:00')

    def test_idempotent_on_canonical_output(self):
        for raw in ('2p', '9a', '2:30 PM', '14:30', '7', '12a', '1P', '23:59', '12'):
            with self.subTest(raw=raw):
                once = normalize_time(raw)
                self.assertEqual(normalize_time(once), once)

class TestHelpers(unittest.TestCase):

    def test_is_canonical_time(self):
        self.assertTrue(is_canonical_time('09:00'))
        self.assertTrue(is_canonical_time('23:59'))
        self.assertFalse(is_canonical_time('9:00'))
        self.assertFalse(is_canonical_time('24:00'))
        self.assertFalse(is_canonical_time('2p'))
        self.assertFalse(is_canonical_time(None))

    def test_convert_meridiem_time(self):
        self.assertEqual(convert_meridiem_time('7:30 PM'), '19:30')
        self.assertEqual(convert_meridiem_time('12:00am'), '00:00')
        self.assertEqual(convert_meridiem_time('12:30 PM'), '12:30')
        self.assertEqual(convert_meridiem_time('14:00'), '14:00')
        self.assertEqual(convert_meridiem_time('9:15'), '09:15')

    def test_format_time_to_ampm(self):
        self.assertEqual(format_time_to_ampm('14:30'), '2:30 PM')
        self.assertEqual(format_time_to_ampm('00:05'), '12:05 AM')
        self.assertEqual(format_time_to_ampm('12:00'), '12:00 PM')
        self.assertEqual(format_time_to_ampm(None), '—')
        self.assertEqual(format_time_to_ampm('later'), 'later')

    def test_today_local(self):
        self.assertIsInstance(today_local('America/Los_Angeles'), date)
        self.assertIsInstance(today_local('Not/AZone'), date)

if __name__ == '__main__':
    unittest.main()
