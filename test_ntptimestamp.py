import unittest

from ntptimestamp import (
    UNIX_TO_NTP, NTP_ERA0_MIN_NS, NTP_ERA0_MAX_NS, INT64_MAX, INT64_MIN,
    check_nanos, join, split, ntp_to_unix_ns, ntp64_to_unix_ns, unix_ns_to_ntp, unix_ns_to_ntp64,
)
from sntperror import TimestampOutOfRange

class TestNTPtoUnix(unittest.TestCase):
    def test_known_values(self):
        cases = [
            ((UNIX_TO_NTP, 0), 0),
            ((UNIX_TO_NTP, 2**31), 500_000_000),
            ((UNIX_TO_NTP, 2**30), 250_000_000),
            ((UNIX_TO_NTP, 1), 0),  # 0.23 ns rounds down
            ((UNIX_TO_NTP, 0xFFFFFFFF), 1_000_000_000),  # 999999999.77 ns rounds up
            ((UNIX_TO_NTP + 1, 0), 1_000_000_000),
            ((UNIX_TO_NTP - 1, 0), -1_000_000_000),
            ((0, 0), -UNIX_TO_NTP * 1_000_000_000),
            ((0xE8000001, 0x80000000), (0xE8000001 - UNIX_TO_NTP) * 1_000_000_000 + 500_000_000),
        ]
        for (seconds, fraction), expected in cases:
            with self.subTest(seconds=seconds, fraction=fraction):
                self.assertEqual(ntp_to_unix_ns(seconds, fraction), expected)
                self.assertEqual(ntp64_to_unix_ns(join(seconds, fraction)), expected)

    def test_monotonic(self):
        """increasing NTP timestamps convert to increasing unix nanoseconds"""
        timestamps = sorted(
            join(seconds, fraction)
            for seconds in (0, 1, UNIX_TO_NTP - 1, UNIX_TO_NTP, 0xE8000000, 0xFFFFFFFF)
            for fraction in (0, 5, 2**20, 2**31, 2**32 - 10)
        )
        converted = [ntp64_to_unix_ns(ts) for ts in timestamps]
        for earlier, later in zip(converted, converted[1:]):
            self.assertLess(earlier, later)

    def test_parts_out_of_range(self):
        for seconds, fraction in ((-1, 0), (2**32, 0), (0, -1), (0, 2**32)):
            with self.subTest(seconds=seconds, fraction=fraction):
                with self.assertRaises(ValueError):
                    ntp_to_unix_ns(seconds, fraction)
        with self.assertRaises(ValueError):
            split(2**64)

class TestUnixToNTP(unittest.TestCase):
    def test_known_values(self):
        self.assertEqual(unix_ns_to_ntp(0), (UNIX_TO_NTP, 0))
        self.assertEqual(unix_ns_to_ntp(500_000_000), (UNIX_TO_NTP, 2**31))
        self.assertEqual(unix_ns_to_ntp(-500_000_000), (UNIX_TO_NTP - 1, 2**31))
        self.assertEqual(unix_ns_to_ntp(NTP_ERA0_MIN_NS), (0, 0))
        self.assertEqual(unix_ns_to_ntp(NTP_ERA0_MAX_NS), (0xFFFFFFFF, 0xFFFFFFFC))
        self.assertEqual(unix_ns_to_ntp64(1_000_000_000), (UNIX_TO_NTP + 1) << 32)

    def test_nanosecond_precision_survives(self):
        for unix_ns in (0, 1, 999_999_999, 1_700_000_000_123_456_789, -1, NTP_ERA0_MAX_NS, NTP_ERA0_MIN_NS):
            with self.subTest(unix_ns=unix_ns):
                self.assertEqual(ntp_to_unix_ns(*unix_ns_to_ntp(unix_ns)), unix_ns)

    def test_outside_era(self):
        for unix_ns in (NTP_ERA0_MIN_NS - 1, NTP_ERA0_MAX_NS + 1, INT64_MAX, INT64_MIN):
            with self.subTest(unix_ns=unix_ns):
                with self.assertRaises(TimestampOutOfRange):
                    unix_ns_to_ntp(unix_ns)

class TestRangeCheck(unittest.TestCase):
    def test_check_nanos(self):
        self.assertEqual(check_nanos(INT64_MAX), INT64_MAX)
        self.assertEqual(check_nanos(INT64_MIN), INT64_MIN)
        for value in (INT64_MAX + 1, INT64_MIN - 1):
            with self.subTest(value=value):
                with self.assertRaises(TimestampOutOfRange):
                    check_nanos(value)

    def test_error_is_overflow(self):
        self.assertTrue(issubclass(TimestampOutOfRange, OverflowError))

if __name__ == "__main__":
    unittest.main()
