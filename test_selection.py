# test_selection.py

import threading
import unittest

from selection import DragSelection, SelectionLocked, SelectionRegistry


class DragSelectionTestCase(unittest.TestCase):
    """Tests for the press/enter/release state machine."""

    def setUp(self):
        self.commits = []
        self.selection = DragSelection(lambda person, mode, days: self.commits.append((person, mode, days)) or len(days))

    def test_press_without_acting_person_is_ignored(self):
        self.assertFalse(self.selection.press('2025-03-10'))
        self.assertEqual(self.selection.state, 'idle')
        self.assertIsNone(self.selection.release())
        self.assertEqual(self.commits, [])

    def test_drag_commits_expanded_range_once(self):
        self.selection.set_acting_person('p1')
        self.selection.set_mode('unavailable')
        self.assertTrue(self.selection.press('2025-03-12'))
        self.assertTrue(self.selection.enter('2025-03-14'))
        self.assertTrue(self.selection.enter('2025-03-10'))
        self.assertFalse(self.selection.enter('2025-03-10'))
        self.assertEqual(self.selection.highlighted(), ['2025-03-10', '2025-03-11', '2025-03-12'])
        self.assertEqual(self.selection.release(), 3)
        self.assertEqual(self.commits, [('p1', 'unavailable', ['2025-03-10', '2025-03-11', '2025-03-12'])])
        self.assertEqual((self.selection.state, self.selection.highlighted()), ('idle', []))

    def test_single_click_and_leave(self):
        """Leaving the surface commits just like releasing the pointer."""
        self.selection.set_acting_person('p1')
        self.selection.press('2025-03-10')
        self.selection.leave()
        self.assertEqual(self.commits, [('p1', 'available', ['2025-03-10'])])

    def test_enter_while_idle_does_nothing(self):
        self.selection.set_acting_person('p1')
        self.assertFalse(self.selection.enter('2025-03-10'))
        self.assertEqual(self.selection.highlighted(), [])

    def test_actor_and_mode_locked_while_dragging(self):
        self.selection.set_acting_person('p1')
        self.selection.press('2025-03-10')
        with self.assertRaises(SelectionLocked): self.selection.set_mode('maybe')
        with self.assertRaises(SelectionLocked): self.selection.set_acting_person('p2')
        self.selection.release()
        self.selection.set_mode('maybe')
        self.assertEqual(self.selection.mode, 'maybe')
        with self.assertRaises(ValueError): self.selection.set_mode('busy')

    def test_transitions_wait_for_the_lock(self):
        """A press arriving on another thread waits for an in-flight transition."""
        self.selection.set_acting_person('p1')
        with self.selection.lock:
            worker = threading.Thread(target=self.selection.press, args=('2025-03-10',))
            worker.start()
            worker.join(0.05)
            self.assertTrue(worker.is_alive())
            self.assertEqual(self.selection.state, 'idle')
        worker.join()
        self.assertEqual(self.selection.state, 'dragging')

    def test_failed_commit_still_resets(self):
        def explode(person, mode, days): raise RuntimeError('offline')
        selection = DragSelection(explode)
        selection.set_acting_person('p1')
        selection.press('2025-03-10')
        with self.assertRaises(RuntimeError): selection.release()
        self.assertEqual(selection.state, 'idle')

    def test_registry_keeps_one_selection_per_user(self):
        registry = SelectionRegistry(lambda *args: None)
        self.assertIs(registry.get('u1'), registry.get('u1'))
        self.assertIsNot(registry.get('u1'), registry.get('u2'))


if __name__ == '__main__':
    unittest.main()
