"""
Tests for draft reconciliation rules and the draft -> event payload boundary
"""

import unittest
import sys
import os
from datetime import date

# Add project root to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from scripts.draft_rules import DraftValidationError, build_event_payload, reconcile_edit

TODAY = date(2025, 1, 15)

class TestDateCascade(unittest.TestCase):
    """Start date edits pull the end date along"""

    def test_empty_end_date_follows_start(self):
        record = reconcile_edit({'end_date': None}, 'start_date', '2025-03-01', TODAY)
        self.assertEqual(record['start_date'], '2025-03-01')
        self.assertEqual(record['end_date'], '2025-03-01')

    def test_missing_end_date_follows_start(self):
        record = reconcile_edit({}, 'start_date', '2025-03-01', TODAY)
        self.assertEqual(record['end_date'], '2025-03-01')

    def test_end_date_equal_to_today_follows_start(self):
        record = reconcile_edit({'end_date': '2025-01-15'}, 'start_date', '2025-03-01', TODAY)
        self.assertEqual(record['end_date'], '2025-03-01')

    def test_earlier_end_date_is_bumped(self):
        record = reconcile_edit({'start_date': '2025-02-01', 'end_date': '2025-02-03'},
                                'start_date', '2025-03-01', TODAY)
        self.assertEqual(record['end_date'], '2025-03-01')

    def test_later_end_date_is_untouched(self):
        record = reconcile_edit({'start_date': '2025-02-01', 'end_date': '2025-04-01'},
                                'start_date', '2025-03-01', TODAY)
        self.assertEqual(record['end_date'], '2025-04-01')

    def test_unparseable_end_date_counts_as_empty(self):
        record = reconcile_edit({'end_date': 'sometime'}, 'start_date', '2025-03-01', TODAY)
        self.assertEqual(record['end_date'], '2025-03-01')

    def test_cleared_start_date_leaves_end_date(self):
        record = reconcile_edit({'start_date': '2025-03-01', 'end_date': '2025-03-02'}, 'start_date', '', TODAY)
        self.assertEqual(record['start_date'], '')
        self.assertEqual(record['end_date'], '2025-03-02')

    def test_end_date_is_stored_verbatim(self):
        record = reconcile_edit({'start_date': '2025-03-01', 'end_date': '2025-03-01'},
                                'end_date', '2025-02-01', TODAY)
        self.assertEqual(record['end_date'], '2025-02-01')
        self.assertEqual(record['start_date'], '2025-03-01')

    def test_input_record_is_not_modified(self):
        original = {'start_date': None, 'end_date': None}
        reconcile_edit(original, 'start_date', '2025-03-01', TODAY)
        self.assertEqual(original, {'start_date': None, 'end_date': None})

class TestTimeRules(unittest.TestCase):

    def test_start_time_is_normalized(self):
        record = reconcile_edit({}, 'start_time', '9a', TODAY)
        self.assertEqual(record['start_time'], '09:00')

    def test_start_time_after_end_moves_end(self):
        record = reconcile_edit({'end_time': '08:00'}, 'start_time', '9a', TODAY)
        self.assertEqual(record['end_time'], '09:00')

    def test_start_time_before_end_keeps_end(self):
        record = reconcile_edit({'end_time': '17:00'}, 'start_time', '9a', TODAY)
        self.assertEqual(record['end_time'], '17:00')

    def test_bare_end_hour_before_morning_start(self):
        record = reconcile_edit({'start_time': '09:00'}, 'end_time', '2', TODAY)
        self.assertEqual(record['end_time'], '14:00')

    def test_bare_end_hour_with_afternoon_start(self):
        record = reconcile_edit({'start_time': '14:00'}, 'end_time', '2', TODAY)
        self.assertEqual(record['end_time'], '14:00')

    def test_end_before_start_is_clamped(self):
        record = reconcile_edit({'start_time': '15:00'}, 'end_time', '2:00 PM', TODAY)
        self.assertEqual(record['end_time'], '15:00')

    def test_end_time_never_left_earlier_than_start(self):
        for raw in ('1p', '13:00', '9:00 AM', '12a'):
            with self.subTest(raw=raw):
                record = reconcile_edit({'start_time': '22:00'}, 'end_time', raw, TODAY)
                self.assertGreaterEqual(record['end_time'], '22:00')

    def test_unrecognized_end_time_is_kept_for_the_operator(self):
        record = reconcile_edit({'start_time': '09:00'}, 'end_time', 'late', TODAY)
        self.assertEqual(record['end_time'], 'late')

    def test_uncommitted_keystrokes_are_stored_verbatim(self):
        record = reconcile_edit({'start_time': '09:00'}, 'end_time', '2', TODAY, commit=False)
        self.assertEqual(record['end_time'], '2')

class TestSlugDerivation(unittest.TestCase):

    def test_name_change_derives_slug_in_form(self):
        record = reconcile_edit({'slug': ''}, 'name', "St. Mary's Harvest Fair", TODAY, derive_slug=True)
        self.assertEqual(record['slug'], 'st-marys-harvest-fair')

    def test_overridden_slug_is_kept(self):
        record = reconcile_edit({'slug': 'custom'}, 'name', 'New Name', TODAY, derive_slug=True,
                                slug_overridden=True)
        self.assertEqual(record['slug'], 'custom')

    def test_draft_editor_does_not_derive_slug(self):
        record = reconcile_edit({'slug': 'old'}, 'name', 'New Name', TODAY)
        self.assertEqual(record['slug'], 'old')
        self.assertEqual(record['name'], 'New Name')

class TestBuildEventPayload(unittest.TestCase):
    """Confirmed draft -> event fields"""

    def setUp(self):
        self.draft = {
            'name': 'Jazz  Night',
            'start_date': '2025-06-06',
            'end_date': None,
            'start_time': '19:00',
            'end_time': '22:00',
            'all_day': False,
            'location': None,
            'website_url': 'jazz.example.com',
            'recurrence': 'Annual',
            'status': 'draft',
        }

    def test_defaults(self):
        payload = build_event_payload(self.draft, ocr_text='Jazz Night\nJune 6, 2025 7:00 PM - 10:00 PM')
        self.assertEqual(payload['name'], 'Jazz Night')
        self.assertEqual(payload['slug'], 'jazz-night')
        self.assertEqual(payload['start_date'], date(2025, 6, 6))
        self.assertEqual(payload['end_date'], date(2025, 6, 6))
        self.assertEqual(payload['status'], 'draft')
        self.assertEqual(payload['sort_order'], 1000)
        self.assertEqual(payload['website_url'], 'https://jazz.example.com')
        self.assertIn('June 6, 2025', payload['ocr_text'])

    def test_operator_status_and_sort_order(self):
        payload = build_event_payload(self.draft, status='published', sort_order='50')
        self.assertEqual(payload['status'], 'published')
        self.assertEqual(payload['sort_order'], 50)

    def test_unknown_status_falls_back_to_draft(self):
        self.assertEqual(build_event_payload(self.draft, status='live')['status'], 'draft')

    def test_missing_name(self):
        self.draft['name'] = '  '
        with self.assertRaises(DraftValidationError) as ctx:
            build_event_payload(self.draft)
        self.assertIn('Event name is required', ctx.exception.errors)

    def test_end_before_start(self):
        self.draft['end_date'] = '2025-06-01'
        with self.assertRaises(DraftValidationError):
            build_event_payload(self.draft)

    def test_unnormalized_time(self):
        self.draft['end_time'] = 'late'
        with self.assertRaises(DraftValidationError) as ctx:
            build_event_payload(self.draft)
        self.assertEqual(ctx.exception.errors, ['Unrecognized end time: late'])

    def test_bad_sort_order(self):
        with self.assertRaises(DraftValidationError):
            build_event_payload(self.draft, sort_order='first')

    def test_fractional_and_non_finite_sort_order(self):
        for raw in ('1.5', 'inf', '-inf', 'nan', 1.5):
            with self.subTest(sort_order=raw):
                with self.assertRaises(DraftValidationError) as ctx:
                    build_event_payload(self.draft, sort_order=raw)
                self.assertEqual(ctx.exception.errors, [f'Sort order must be an integer: {raw}'])

    def test_whole_number_sort_order(self):
        self.assertEqual(build_event_payload(self.draft, sort_order='20.0')['sort_order'], 20)
        self.assertEqual(build_event_payload(self.draft, sort_order=7)['sort_order'], 7)

if __name__ == '__main__':
    unittest.main()
