import math
import unittest

from seqsynth.errors import ForceInvalidError, TimeInvalidError
from seqsynth.time_model import Duration, Force, Time, TimeSpan


class TestTime(unittest.TestCase):
    def test_valid_values_round_trip(self) -> None:
        for value in (0.0, 1e-300, 0.5, 5.5, 1e300):
            self.assertEqual(Time(value).value, value)
            self.assertEqual(float(Time(value)), value)

    def test_rejects_negative_and_non_finite(self) -> None:
        for value in (-1e-9, -3.0, math.nan, math.inf, -math.inf):
            with self.assertRaises(TimeInvalidError):
                Time(value)
        with self.assertRaises(TimeInvalidError):
            Duration(math.nan)

    def test_rejects_non_numeric(self) -> None:
        with self.assertRaises(TimeInvalidError):
            Time("soon")  # type: ignore[arg-type]

    def test_invalid_time_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            Time(-1.0)

    def test_total_order_across_time_and_duration(self) -> None:
        values = [Time(3.0), Duration(1.0), Time(2.0)]
        self.assertEqual([t.value for t in sorted(values)], [1.0, 2.0, 3.0])
        self.assertEqual(max(values).value, 3.0)
        self.assertEqual(Time(1.0), Duration(1.0))
        self.assertLessEqual(Time(1.0), Duration(1.0))


class TestForce(unittest.TestCase):
    def test_accepts_unit_interval(self) -> None:
        self.assertEqual(Force(0.0).value, 0.0)
        self.assertEqual(Force(1.0).value, 1.0)
        self.assertEqual(Force(0.25).value, 0.25)

    def test_rejects_out_of_range(self) -> None:
        for value in (-0.1, 1.01, math.nan, math.inf):
            with self.assertRaises(ForceInvalidError):
                Force(value)


class TestTimeSpan(unittest.TestCase):
    def test_starting_at_derives_end(self) -> None:
        span = TimeSpan.starting_at(1.5, 2.25)
        self.assertEqual(span.start_at.value, 1.5)
        self.assertEqual(span.end_at.value, 3.75)
        self.assertEqual(span.duration.value, 2.25)
        self.assertIsInstance(span.duration, Duration)

    def test_between_derives_duration(self) -> None:
        span = TimeSpan.between(Time(2.0), Time(5.0))
        self.assertEqual(span.duration.value, 3.0)

    def test_rejects_empty_and_inverted_spans(self) -> None:
        with self.assertRaises(TimeInvalidError):
            TimeSpan.between(2.0, 2.0)
        with self.assertRaises(TimeInvalidError):
            TimeSpan.between(3.0, 2.0)
        with self.assertRaises(TimeInvalidError):
            TimeSpan.starting_at(1.0, 0.0)

    def test_rejects_overflowing_end(self) -> None:
        with self.assertRaises(TimeInvalidError):
            TimeSpan.starting_at(1e308, 1e308)

    def test_direct_construction_checks_consistency(self) -> None:
        with self.assertRaises(TimeInvalidError):
            TimeSpan(start_at=Time(0.0), end_at=Time(5.0), duration=Duration(1.0))

    def test_contains_is_half_open(self) -> None:
        span = TimeSpan.between(1.0, 2.0)
        self.assertTrue(span.contains(1.0))
        self.assertTrue(span.contains(1.999))
        self.assertFalse(span.contains(2.0))


if __name__ == "__main__":
    unittest.main()
