import unittest

from posealign.pose.types import LANDMARK_INDICES, Landmark, LandmarkSet, Photo
from tests.helpers import make_landmarks, make_pose


class TestLandmark(unittest.TestCase):
	def test_visibility_is_clamped(self):
		self.assertEqual(Landmark(0.1, 0.2, 0.0, -0.3).visibility, 0.0)
		self.assertEqual(Landmark(0.1, 0.2, 0.0, 1.7).visibility, 1.0)

	def test_immutable(self):
		lm = Landmark(0.1, 0.2)
		with self.assertRaises(Exception):
			lm.x = 0.5  # type: ignore[misc]


class TestLandmarkSet(unittest.TestCase):
	def test_requires_33_points(self):
		with self.assertRaises(ValueError):
			LandmarkSet([Landmark(0.5, 0.5)] * 32)

	def test_coerce_treats_wrong_length_as_absent(self):
		self.assertIsNone(LandmarkSet.coerce([{"x": 0.1, "y": 0.2}] * 10))
		self.assertIsNone(LandmarkSet.coerce(None))

	def test_from_dicts_keeps_order(self):
		rows = [{"x": i / 33.0, "y": 0.5, "z": 0.0, "visibility": 0.9} for i in range(33)]
		ls = LandmarkSet.from_sequence(rows)
		self.assertEqual(len(ls), 33)
		self.assertAlmostEqual(ls[12].x, 12 / 33.0)
		self.assertEqual(LANDMARK_INDICES["right_shoulder"], 12)

	def test_equality_and_round_trip_to_list(self):
		a = make_pose()
		b = LandmarkSet.from_sequence(a.to_list())
		self.assertEqual(a, b)
		self.assertEqual(hash(a), hash(b))


class TestPhoto(unittest.TestCase):
	def test_with_landmarks_returns_new_photo(self):
		p = Photo(id="p1", data=b"x", width=10, height=20)
		q = p.with_landmarks(make_landmarks())
		self.assertIsNone(p.landmarks)
		self.assertIsNotNone(q.landmarks)
		self.assertEqual(q.id, "p1")
		self.assertEqual(q.size.width, 10)
		self.assertEqual(q.size.height, 20)


if __name__ == "__main__":
	unittest.main()
