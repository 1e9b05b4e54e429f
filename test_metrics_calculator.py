import random
import unittest
from unittest.mock import Mock

from metrics_calculator import (
    MetricsCalculator, apply_ping_summary, clamp_percent, empty_metrics, finite_or, round_half_up,
)
from models import IntervalStat, MetricsSource, PingSummary, PING_UNPARSED


def fixed_rng(value=0.0):
    rng = Mock()
    rng.uniform.return_value = value
    return rng


class TestRounding(unittest.TestCase):

    def test_half_up(self):
        self.assertEqual(round_half_up(0.35, 1), 0.4)
        self.assertEqual(round_half_up(2.675, 2), 2.68)
        self.assertEqual(round_half_up(0.25, 1), 0.3)
        self.assertEqual(round_half_up(7, 1), 7.0)

    def test_finite_or(self):
        self.assertEqual(finite_or(float('nan')), 0.0)
        self.assertEqual(finite_or(float('inf'), 1.5), 1.5)
        self.assertEqual(finite_or('12'), 0.0)
        self.assertEqual(finite_or(True), 0.0)
        self.assertEqual(finite_or(3.5), 3.5)

    def test_clamp_percent(self):
        self.assertEqual(clamp_percent(-1), 0.0)
        self.assertEqual(clamp_percent(250), 100.0)
        self.assertEqual(clamp_percent(float('nan')), 0.0)


class TestDeriveMetrics(unittest.TestCase):

    def setUp(self):
        self.calculator = MetricsCalculator(rng=fixed_rng())

    def test_uses_last_interval(self):
        intervals = [
            IntervalStat('0 <> 1', frame_count=5000, byte_count=50000000),
            IntervalStat('1 <> 2', frame_count=100, byte_count=1250000),
        ]
        metrics = self.calculator.derive_metrics(intervals, 'eth0')

        self.assertEqual(metrics.download_mbps, 7.0)
        self.assertEqual(metrics.upload_mbps, 3.0)
        self.assertEqual(metrics.latency_ms, 60.0)
        self.assertEqual(metrics.packet_loss_percent, 0.1)
        self.assertEqual(metrics.source, MetricsSource.LIVE)
        self.assertEqual(metrics.interface_id, 'eth0')

    def test_split_rounds_half_up(self):
        metrics = self.calculator.derive_metrics([IntervalStat('0 <> 1', 10, 62500)])
        self.assertEqual(metrics.download_mbps, 0.4)
        self.assertEqual(metrics.upload_mbps, 0.2)
        self.assertEqual(metrics.latency_ms, 96.2)

    def test_high_rate_and_throughput_raise_loss(self):
        metrics = self.calculator.derive_metrics([IntervalStat('0 <> 1', 2000, 12500000)])
        self.assertEqual(metrics.download_mbps, 70.0)
        self.assertEqual(metrics.upload_mbps, 30.0)
        self.assertEqual(metrics.latency_ms, 27.3)
        self.assertAlmostEqual(metrics.packet_loss_percent, 0.9)

    def test_sub_floor_duration(self):
        metrics = self.calculator.derive_metrics([IntervalStat('1 <> 1', 1, 12500, duration_seconds=0)])
        # 12500 bytes over the 0.1s floor is 1 Mbps
        self.assertEqual(metrics.download_mbps, 0.7)
        self.assertEqual(metrics.upload_mbps, 0.3)

    def test_empty_input_is_partial_zero(self):
        metrics = self.calculator.derive_metrics([], 'eth0')
        self.assertEqual(metrics.source, MetricsSource.PARTIAL)
        self.assertEqual(
            (metrics.download_mbps, metrics.upload_mbps, metrics.latency_ms, metrics.packet_loss_percent),
            (0.0, 0.0, 0.0, 0.0),
        )
        self.assertFalse(metrics.simulated)

    def test_bounds_hold_for_random_input(self):
        calculator = MetricsCalculator(rng=random.Random(7))
        generator = random.Random(11)
        for _ in range(500):
            interval = IntervalStat(
                'x', generator.randint(0, 10 ** 6), generator.randint(0, 10 ** 10),
                duration_seconds=generator.choice([0, 0.05, 1, 2.5, float('nan')]),
            )
            metrics = calculator.derive_metrics([interval])
            self.assertGreaterEqual(metrics.download_mbps, 0)
            self.assertGreaterEqual(metrics.upload_mbps, 0)
            self.assertGreaterEqual(metrics.latency_ms, 0)
            self.assertGreaterEqual(metrics.packet_loss_percent, 0)
            self.assertLessEqual(metrics.packet_loss_percent, 100)


class TestEstimates(unittest.TestCase):

    def test_latency_decreases_with_throughput(self):
        calculator = MetricsCalculator(rng=fixed_rng())
        latencies = [calculator.estimate_latency(mbps) for mbps in (0, 0.5, 1, 10, 100, 1000)]
        self.assertEqual(latencies, sorted(latencies, reverse=True))
        self.assertEqual(calculator.estimate_latency(0), 100.0)

    def test_latency_jitter_bounds(self):
        calculator = MetricsCalculator(rng=random.Random(3))
        for _ in range(200):
            latency = calculator.estimate_latency(10)
            self.assertGreaterEqual(latency, 55)
            self.assertLessEqual(latency, 65)

    def test_no_packets_means_base_loss(self):
        calculator = MetricsCalculator(rng=fixed_rng())
        self.assertAlmostEqual(calculator.estimate_packet_loss(0, 100), 0.1)

    def test_packet_count_estimate(self):
        calculator = MetricsCalculator(rng=fixed_rng())
        metrics = calculator.estimate_from_packet_count(50, 5, 'eth0')

        self.assertEqual(metrics.source, MetricsSource.PARTIAL)
        self.assertEqual(metrics.download_mbps, 0.1)
        self.assertEqual(metrics.upload_mbps, 0.0)
        self.assertEqual(metrics.latency_ms, 49.0)
        self.assertEqual(metrics.packet_loss_percent, 0.5)

    def test_packet_count_estimate_without_packets(self):
        calculator = MetricsCalculator(rng=fixed_rng())
        metrics = calculator.estimate_from_packet_count(0, 5)
        self.assertEqual(metrics.download_mbps, 0.0)
        self.assertEqual(metrics.source, MetricsSource.PARTIAL)


class TestPingOverride(unittest.TestCase):

    def test_measured_values_replace_estimates(self):
        metrics = empty_metrics('eth0')
        metrics.latency_ms = 60.0
        apply_ping_summary(metrics, PingSummary(latency_ms=12.345, packet_loss_percent=25.0))
        self.assertEqual(metrics.latency_ms, 12.3)
        self.assertEqual(metrics.packet_loss_percent, 25.0)

    def test_unparsed_summary_is_ignored(self):
        metrics = empty_metrics('eth0')
        metrics.latency_ms = 60.0
        apply_ping_summary(metrics, PING_UNPARSED)
        self.assertEqual(metrics.latency_ms, 60.0)

    def test_partial_summary(self):
        metrics = empty_metrics()
        metrics.latency_ms = 40.0
        apply_ping_summary(metrics, PingSummary(latency_ms=None, packet_loss_percent=100.0))
        self.assertEqual(metrics.latency_ms, 40.0)
        self.assertEqual(metrics.packet_loss_percent, 100.0)


if __name__ == '__main__':
    unittest.main()
