import asyncio
import random
import tempfile
import threading
import unittest
from pathlib import Path

from posealign.alignment.calculator import MAX_SCALE, MIN_SCALE, calculate_alignment
from posealign.alignment.coordinator import MISSING_LANDMARKS_MESSAGE, AlignmentCoordinator
from posealign.alignment.keyboard import KeyEvent
from posealign.debug_log import AlignmentDebugLog
from posealign.editor_state import EditorState
from posealign.pose.types import Photo
from tests.helpers import make_landmarks, make_pose


def photo(landmarks, pid="p", width=1000, height=1000):
	return Photo(id=pid, data=b"", width=width, height=height, landmarks=landmarks)


def loaded_state(before=None, after=None, anchor="shoulders"):
	state = EditorState()
	state.set_before_photo(photo(before if before is not None else make_pose(), "before"))
	state.set_after_photo(photo(after if after is not None else make_pose(shoulder_half_width=0.05), "after"))
	state.update_alignment(anchor=anchor)
	return state


class CountingCalculator:
	def __init__(self):
		self.calls = []

	def __call__(self, before, after, anchor, before_size, after_size):
		self.calls.append((before, after, anchor))
		return calculate_alignment(before, after, anchor, before_size, after_size)


class TestDerivedFlags(unittest.TestCase):
	def test_can_align_needs_both_photos_with_landmarks(self):
		state = EditorState()
		coord = AlignmentCoordinator(state)
		self.assertFalse(coord.can_align)
		state.set_before_photo(photo(make_pose(), "b"))
		self.assertFalse(coord.can_align)
		state.set_after_photo(photo(None, "a"))
		self.assertFalse(coord.can_align)
		state.set_after_landmarks(make_pose())
		self.assertTrue(coord.can_align)

	def test_can_align_follows_anchor(self):
		hips_only = make_landmarks({23: (0.45, 0.6, 0.9), 24: (0.55, 0.6, 0.9)})
		state = loaded_state(hips_only, hips_only, anchor="hips")
		coord = AlignmentCoordinator(state)
		self.assertTrue(coord.can_align)
		coord.set_anchor("shoulders")
		self.assertFalse(coord.can_align)

	def test_is_aligned_tracks_settings(self):
		state = EditorState()
		coord = AlignmentCoordinator(state)
		self.assertFalse(coord.is_aligned)
		coord.adjust(offset_x=3)
		self.assertTrue(coord.is_aligned)
		coord.reset()
		self.assertFalse(coord.is_aligned)


class TestAutoAlign(unittest.IsolatedAsyncioTestCase):
	async def test_burst_collapses_to_one_computation(self):
		state = loaded_state()
		calc = CountingCalculator()
		coord = AlignmentCoordinator(state, debounce_s=0.05, calculator=calc)
		for _ in range(5):
			coord.auto_align()
		self.assertTrue(coord.has_pending)
		await coord.wait_idle()
		self.assertEqual(len(calc.calls), 1)
		self.assertEqual(coord.computations, 1)
		self.assertFalse(coord.has_pending)

	async def test_last_trigger_inputs_win(self):
		state = loaded_state(anchor="shoulders")
		calc = CountingCalculator()
		coord = AlignmentCoordinator(state, debounce_s=0.05, calculator=calc)
		coord.auto_align()
		coord.set_anchor("hips")
		coord.auto_align()
		await coord.wait_idle()
		self.assertEqual([c[2] for c in calc.calls], ["hips"])

	async def test_inputs_are_snapshotted_at_trigger(self):
		state = loaded_state()
		calc = CountingCalculator()
		coord = AlignmentCoordinator(state, debounce_s=0.05, calculator=calc)
		expected_after = state.after_photo.landmarks
		coord.auto_align()
		state.set_after_photo(None)
		await coord.wait_idle()
		self.assertEqual(len(calc.calls), 1)
		self.assertIs(calc.calls[0][1], expected_after)

	async def test_success_writes_settings_and_clears_error(self):
		state = loaded_state()
		state.error = "old error"
		coord = AlignmentCoordinator(state, debounce_s=0)
		coord.auto_align()
		await coord.wait_idle()
		self.assertIsNone(state.error)
		self.assertAlmostEqual(state.alignment.scale, 2.0, places=6)
		self.assertEqual(state.alignment.anchor, "shoulders")
		self.assertTrue(coord.is_aligned)
		self.assertIsNotNone(coord.last_result)

	async def test_missing_landmarks_fail_closed(self):
		state = EditorState()
		state.set_before_photo(photo(make_pose(), "b"))
		coord = AlignmentCoordinator(state, debounce_s=0)
		coord.adjust(offset_x=12.0)
		coord.auto_align()
		await coord.wait_idle()
		self.assertEqual(state.error, MISSING_LANDMARKS_MESSAGE)
		self.assertEqual(state.alignment.offset_x, 12.0)

	async def test_degenerate_pose_fails_closed(self):
		collapsed = make_landmarks({11: (0.5, 0.4, 0.9), 12: (0.5, 0.4, 0.9)})
		state = loaded_state(after=collapsed)
		coord = AlignmentCoordinator(state, debounce_s=0)
		coord.adjust(scale=1.2, offset_x=5.0, offset_y=-5.0)
		coord.auto_align()
		await coord.wait_idle()
		self.assertIsNotNone(state.error)
		self.assertEqual(
			(state.alignment.scale, state.alignment.offset_x, state.alignment.offset_y),
			(1.2, 5.0, -5.0),
		)

	async def test_reset_cancels_pending(self):
		state = loaded_state()
		calc = CountingCalculator()
		coord = AlignmentCoordinator(state, debounce_s=0.05, calculator=calc)
		coord.adjust(scale=1.5, offset_x=4.0)
		coord.auto_align()
		coord.reset()
		self.assertFalse(coord.has_pending)
		await asyncio.sleep(0.1)
		self.assertEqual(calc.calls, [])
		self.assertEqual(state.alignment.to_dict(), {"anchor": "full", "scale": 1.0, "offset_x": 0.0, "offset_y": 0.0})

	async def test_close_ignores_later_triggers(self):
		state = loaded_state()
		calc = CountingCalculator()
		coord = AlignmentCoordinator(state, debounce_s=0.05, calculator=calc)
		coord.auto_align()
		coord.close()
		self.assertTrue(coord.closed)
		self.assertIsNone(coord.auto_align())
		await asyncio.sleep(0.1)
		self.assertEqual(calc.calls, [])
		self.assertTrue(state.alignment.is_neutral())

	async def test_listener_is_notified_and_errors_swallowed(self):
		seen = []

		def listener(settings):
			seen.append(settings.to_dict())
			raise RuntimeError("listener bug")

		state = loaded_state()
		coord = AlignmentCoordinator(state, debounce_s=0, on_change=listener)
		with self.assertLogs("posealign.alignment.coordinator", level="WARNING"):
			coord.auto_align()
			await coord.wait_idle()
		self.assertEqual(len(seen), 1)
		self.assertAlmostEqual(seen[0]["scale"], 2.0, places=6)

	async def test_debug_log_records_computed_alignment(self):
		with tempfile.TemporaryDirectory() as tmp:
			log = AlignmentDebugLog(Path(tmp) / "log.json", enabled=True)
			state = loaded_state()
			coord = AlignmentCoordinator(state, debounce_s=0, debug_log=log)
			coord.auto_align()
			await coord.wait_idle()
			entries = log.read()
			self.assertEqual(len(entries), 1)
			self.assertEqual(entries[0]["input"]["anchor"], "shoulders")
			self.assertEqual(entries[0]["result"]["scale"], 2.0)


class TestKeyboard(unittest.IsolatedAsyncioTestCase):
	async def test_arrow_keys_move_offsets(self):
		state = EditorState()
		coord = AlignmentCoordinator(state)
		self.assertTrue(coord.apply_key(KeyEvent("ArrowRight")))
		self.assertTrue(coord.apply_key(KeyEvent("ArrowDown", shift=True)))
		self.assertTrue(coord.apply_key(KeyEvent("ArrowLeft", shift=True)))
		self.assertTrue(coord.apply_key(KeyEvent("ArrowUp")))
		self.assertEqual(state.alignment.offset_x, 1.0 - 10.0)
		self.assertEqual(state.alignment.offset_y, 10.0 - 1.0)

	async def test_scale_keys_stay_in_range(self):
		state = EditorState()
		coord = AlignmentCoordinator(state)
		rng = random.Random(7)
		for _ in range(300):
			coord.apply_key(KeyEvent(rng.choice(["+", "=", "-", "_"]), shift=rng.random() < 0.5))
			self.assertGreaterEqual(state.alignment.scale, MIN_SCALE)
			self.assertLessEqual(state.alignment.scale, MAX_SCALE)

	async def test_keys_ignored_in_text_input(self):
		state = EditorState()
		coord = AlignmentCoordinator(state)
		self.assertFalse(coord.apply_key(KeyEvent("ArrowUp", in_text_input=True)))
		self.assertFalse(coord.apply_key(KeyEvent("q")))
		self.assertTrue(state.alignment.is_neutral())

	async def test_toggles_and_reset(self):
		state = EditorState()
		coord = AlignmentCoordinator(state)
		coord.apply_key(KeyEvent("L"))
		coord.apply_key(KeyEvent("g"))
		self.assertFalse(state.show_landmarks)
		self.assertTrue(state.show_grid)
		coord.adjust(scale=1.7, offset_y=30)
		coord.apply_key(KeyEvent("r"))
		self.assertTrue(state.alignment.is_neutral())

	async def test_a_triggers_auto_align(self):
		state = loaded_state()
		coord = AlignmentCoordinator(state, debounce_s=0)
		coord.apply_key(KeyEvent("a"))
		await coord.wait_idle()
		self.assertEqual(coord.computations, 1)
		self.assertTrue(coord.is_aligned)


if __name__ == "__main__":
	unittest.main()


class BlockingDebugLog(AlignmentDebugLog):
	"""A debug log whose writes hang until `release` is set."""

	def __init__(self, path):
		super().__init__(path, enabled=True)
		self.release = threading.Event()
		self.written = threading.Event()

	def record(self, entry):
		self.release.wait(timeout=5.0)
		super().record(entry)
		self.written.set()


class TestDebugWritesOffLoop(unittest.IsolatedAsyncioTestCase):
	async def test_slow_debug_write_does_not_hold_up_alignment(self):
		with tempfile.TemporaryDirectory() as tmp:
			log = BlockingDebugLog(Path(tmp) / "log.json")
			notified = []
			state = loaded_state()
			coord = AlignmentCoordinator(
				state,
				debounce_s=0,
				debug_log=log,
				on_change=lambda settings: notified.append(log.written.is_set()),
			)
			coord.auto_align()
			for _ in range(100):
				if coord.computations:
					break
				await asyncio.sleep(0.01)

			self.assertEqual(notified, [False])
			self.assertTrue(coord.is_aligned)
			self.assertFalse(log.written.is_set())

			log.release.set()
			await coord.wait_idle()
			self.assertTrue(log.written.is_set())
			self.assertEqual(len(log.read()), 1)

	async def test_disabled_log_schedules_nothing(self):
		with tempfile.TemporaryDirectory() as tmp:
			log = AlignmentDebugLog(Path(tmp) / "log.json", enabled=False)
			coord = AlignmentCoordinator(loaded_state(), debounce_s=0, debug_log=log)
			coord.auto_align()
			await coord.wait_idle()
			self.assertTrue(coord.is_aligned)
			self.assertFalse((Path(tmp) / "log.json").exists())
