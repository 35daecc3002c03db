"""Unit tests for client.stats -- rate math and formatting."""

import unittest

from client.stats import (
    bits_per_second,
    calculate_mbps,
    calculate_mean,
    calculate_stddev,
    format_bytes,
    format_latency,
    format_rate,
)


class TestBitsPerSecond(unittest.TestCase):
    def test_one_megabit(self):
        self.assertEqual(bits_per_second(125_000, 1.0), 1_000_000)

    def test_fractional_duration(self):
        self.assertAlmostEqual(bits_per_second(1000, 0.5), 16_000.0)

    def test_zero_elapsed_is_caller_error(self):
        with self.assertRaises(ZeroDivisionError):
            bits_per_second(1, 0)

    def test_mbps(self):
        self.assertAlmostEqual(calculate_mbps(125_000_000, 10.0), 100.0)


class TestFormatRate(unittest.TestCase):
    CASES = [
        (62_500, False, "500.00 Kbps"),
        (65_536, True, "512.00 Kibit/s"),
        (125_000, False, "1.00 Mbps"),
        (131_072, True, "1.00 Mibit/s"),
        (1_000_000_000, False, "8.00 Gbps"),
        (268_435_456, True, "2.00 Gibit/s"),
    ]

    def test_rate_table(self):
        for byte_count, binary, expected in self.CASES:
            with self.subTest(expected=expected):
                self.assertEqual(format_rate(bits_per_second(byte_count, 1.0), binary), expected)

    def test_below_first_boundary(self):
        self.assertEqual(format_rate(999), "999.00 bps")
        self.assertEqual(format_rate(0), "0.00 bps")

    def test_boundary(self):
        self.assertEqual(format_rate(1000), "1.00 Kbps")
        self.assertEqual(format_rate(1024, binary=True), "1.00 Kibit/s")

    def test_stops_at_last_unit(self):
        self.assertEqual(format_rate(5e12), "5000.00 Gbps")


class TestFormatBytes(unittest.TestCase):
    CASES = [
        (1, True, "1.00 B"),
        (1, False, "1.00 B"),
        (1024, True, "1.00 KiB"),
        (1000, False, "1.00 KB"),
        (1_048_576, True, "1.00 MiB"),
        (1_000_000, False, "1.00 MB"),
        (1_073_741_824, True, "1.00 GiB"),
        (1_000_000_000, False, "1.00 GB"),
    ]

    def test_bytes_table(self):
        for byte_count, binary, expected in self.CASES:
            with self.subTest(expected=expected):
                self.assertEqual(format_bytes(byte_count, binary), expected)

    def test_binary_below_kibibyte(self):
        self.assertEqual(format_bytes(1000, binary=True), "1000.00 B")


class TestMeanStddev(unittest.TestCase):
    def test_mean(self):
        self.assertAlmostEqual(calculate_mean([10.0, 20.0, 30.0]), 20.0)

    def test_stddev_population(self):
        samples = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
        self.assertAlmostEqual(calculate_stddev(samples, calculate_mean(samples)), 2.0)

    def test_stddev_constant(self):
        self.assertEqual(calculate_stddev([5.0, 5.0], 5.0), 0.0)

    def test_stddev_never_negative(self):
        for samples in ([1.0], [0.1, 900.0], [3.3, 3.3, 3.4], [-5.0, 5.0]):
            with self.subTest(samples=samples):
                self.assertGreaterEqual(calculate_stddev(samples, calculate_mean(samples)), 0.0)


class TestFormatLatency(unittest.TestCase):
    def test_ms(self):
        self.assertEqual(format_latency(25.3), "25.3 ms")

    def test_seconds(self):
        self.assertEqual(format_latency(1500.0), "1.50 s")


if __name__ == "__main__":
    unittest.main()
