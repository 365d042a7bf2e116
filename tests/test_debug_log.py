import tempfile
import unittest
from pathlib import Path

from posealign.debug_log import AlignmentDebugLog, build_log_entry, extract_landmark_summary, is_valid_entry
from posealign.pose.types import Photo
from tests.helpers import make_pose


def entry():
	before = Photo(id="b", data=b"", width=640, height=480, landmarks=make_pose())
	after = Photo(id="a", data=b"", width=800, height=600, landmarks=None)
	return build_log_entry(before, after, "full", {"scale": 1.234567, "offset_x": 10.4567, "offset_y": -3.21})


class TestEntries(unittest.TestCase):
	def test_entry_shape(self):
		e = entry()
		self.assertTrue(is_valid_entry(e))
		self.assertEqual(e["input"]["before_img"], {"width": 640, "height": 480})
		self.assertIsNone(e["input"]["after_landmarks"])
		self.assertEqual(e["result"], {"scale": 1.2346, "offset_x": 10.46, "offset_y": -3.21})
		self.assertEqual(e["metadata"]["source"], "auto_align")

	def test_summary(self):
		summary = extract_landmark_summary(make_pose())
		self.assertEqual(summary["count"], 33)
		self.assertAlmostEqual(summary["left_shoulder"]["x"], 0.4)
		self.assertIsNone(extract_landmark_summary(None))

	def test_invalid_entries(self):
		self.assertFalse(is_valid_entry([]))
		self.assertFalse(is_valid_entry({"timestamp": "t"}))


class TestAlignmentDebugLog(unittest.TestCase):
	def setUp(self):
		self._tmp = tempfile.TemporaryDirectory()
		self.path = Path(self._tmp.name) / "nested" / "log.json"

	def tearDown(self):
		self._tmp.cleanup()

	def test_append_read_clear(self):
		log = AlignmentDebugLog(self.path, enabled=True)
		self.assertEqual(log.read(), [])
		self.assertEqual(log.append(entry()), 1)
		self.assertEqual(log.append(entry()), 2)
		self.assertEqual(len(log.read()), 2)
		self.assertTrue(log.clear())
		self.assertFalse(log.clear())
		self.assertEqual(log.read(), [])

	def test_corrupt_file_reads_empty(self):
		self.path.parent.mkdir(parents=True)
		self.path.write_text("{oops", encoding="utf-8")
		log = AlignmentDebugLog(self.path, enabled=True)
		self.assertEqual(log.read(), [])
		self.assertEqual(log.append(entry()), 1)

	def test_record_disabled_writes_nothing(self):
		log = AlignmentDebugLog(self.path, enabled=False)
		log.record(entry())
		self.assertFalse(self.path.exists())

	def test_record_never_raises(self):
		blocker = Path(self._tmp.name) / "file"
		blocker.write_text("x", encoding="utf-8")
		log = AlignmentDebugLog(blocker / "log.json", enabled=True)
		log.record(entry())


if __name__ == "__main__":
	unittest.main()


class TestEntryCap(unittest.TestCase):
	def test_oldest_entries_are_dropped(self):
		with tempfile.TemporaryDirectory() as tmp:
			log = AlignmentDebugLog(Path(tmp) / "log.json", enabled=True, max_entries=3)
			counts = []
			for i in range(5):
				e = entry()
				e["metadata"]["seq"] = i
				counts.append(log.append(e))
			self.assertEqual(counts, [1, 2, 3, 3, 3])
			self.assertEqual([e["metadata"]["seq"] for e in log.read()], [2, 3, 4])
