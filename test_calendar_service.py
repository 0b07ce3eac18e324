# test_calendar_service.py

import unittest

from availability import AvailabilityStore
from calendar_service import build_month_grid, month_days, shift_month


class CalendarServiceTestCase(unittest.TestCase):
    """Tests for month arithmetic and cell colouring."""

    def test_month_days(self):
        self.assertEqual(len(month_days(2024, 2)), 29)
        self.assertEqual(month_days(2025, 12)[-1], '2025-12-31')

    def test_shift_month_wraps_years(self):
        self.assertEqual(shift_month('2025-12', 1), '2026-01')
        self.assertEqual(shift_month('2025-01', -1), '2024-12')

    def test_grid_colours(self):
        store = AvailabilityStore([
            {'id': 'a1', 'userId': 'p1', 'date': '2025-06-02', 'status': 'available'},
            {'id': 'a2', 'userId': 'p1', 'date': '2025-06-03', 'status': 'unavailable'},
            {'id': 'a3', 'userId': 'p1', 'date': '2025-06-04', 'status': 'maybe'},
            {'id': 'a4', 'userId': 'p2', 'date': '2025-06-05', 'status': 'available'},
        ])
        rehearsals = [{'date': '2025-06-04', 'time': '19:00', 'location': 'Hall'}]
        weeks = build_month_grid(2025, 6, store, 'p1', rehearsals)
        # June 2025 starts on a Sunday
        self.assertEqual(weeks[0][0]['date'], '2025-06-01')
        self.assertTrue(all(len(week) == 7 for week in weeks))
        cells = {c['date']: c for week in weeks for c in week}
        self.assertEqual([cells[d]['color'] for d in ('2025-06-02', '2025-06-03', '2025-06-04', '2025-06-05')], ['green', 'red', 'blue', 'gray'])
        self.assertEqual(cells['2025-06-04']['status'], 'maybe')
        self.assertFalse(cells['2025-07-01']['inMonth'])

    def test_grid_without_person_shows_rehearsals_only(self):
        weeks = build_month_grid(2025, 6, AvailabilityStore(), None, [{'date': '2025-06-10', 'time': '18:00', 'location': 'Studio'}])
        colors = {c['color'] for week in weeks for c in week}
        self.assertEqual(colors, {'gray', 'blue'})


if __name__ == '__main__':
    unittest.main()
