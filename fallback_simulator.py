"""
Fallback data for when real capture is unavailable or empty.

All randomness flows through one injectable ``random.Random`` so fallback
output is reproducible under a seed. Every value produced here satisfies the
same domain constraints as live data and is tagged ``simulated``.
"""

import logging
import random

import config
from models import (
    MetricsSource, NetworkMetrics, PingSummary, TrafficSample, TrafficType,
    compute_bitrate_mbps, utc_now,
)
from metrics_calculator import round_half_up
from traffic_classifier import classify

logger = logging.getLogger(__name__)

# (latency, packet loss, download, upload) ranges
DEFAULT_METRIC_RANGES = {
    'latency': (20, 80),
    'packetLoss': (0, 2),
    'download': (20, 70),
    'upload': (5, 25),
}
WIRED_METRIC_RANGES = {
    'latency': (10, 40),
    'packetLoss': (0, 0.5),
    'download': (50, 150),
    'upload': (20, 70),
}
WIRELESS_METRIC_RANGES = {
    'latency': (30, 80),
    'packetLoss': (0.5, 2),
    'download': (20, 60),
    'upload': (5, 20),
}

# (min packets, max packets, min bytes/packet, max bytes/packet)
SIMULATED_TRAFFIC_PROFILES = {
    TrafficType.VIDEO: (50, 100, 1200, 1800),
    TrafficType.AUDIO: (20, 50, 600, 900),
    TrafficType.VOICE: (10, 30, 300, 500),
    TrafficType.GENERIC: (20, 50, 1500, 1500),
}

# Fixed (packets, bytes) used when capture tooling is entirely absent
BASELINE_TRAFFIC = {
    TrafficType.VIDEO: (75, 250000),
    TrafficType.AUDIO: (35, 60000),
    TrafficType.VOICE: (20, 30000),
    TrafficType.GENERIC: (30, 50000),
}

MOCK_INTERFACES = (
    {'index': 1, 'id': 'eth0', 'name': 'eth0', 'ipAddress': '192.168.1.100', 'macAddress': '00:1A:2B:3C:4D:5E'},
    {'index': 2, 'id': 'wlan0', 'name': 'wlan0', 'ipAddress': '192.168.1.101', 'macAddress': '00:1A:2B:3C:4D:5F'},
    {'index': 3, 'id': 'lo', 'name': 'lo', 'ipAddress': '127.0.0.1', 'macAddress': '00:00:00:00:00:00'},
)


def metric_ranges_for(interface_id):
    name = (interface_id or '').lower()
    if 'eth' in name:
        return WIRED_METRIC_RANGES
    if 'wlan' in name:
        return WIRELESS_METRIC_RANGES
    return DEFAULT_METRIC_RANGES


class FallbackSimulator:
    """Produces bounded substitute metrics and traffic samples"""

    def __init__(self, rng=None, seed=None):
        if rng is None:
            rng = random.Random(config.FALLBACK_SEED if seed is None else seed)
        self.rng = rng

    def _uniform(self, bounds):
        low, high = bounds
        return self.rng.uniform(low, high)

    def simulate(self, kind, interface_id=None):
        """
        Simulate a single value by kind.

        A traffic type (or its tag) yields a TrafficSample; a metric name
        (``latency``, ``packetLoss``, ``download``, ``upload``) yields a float;
        ``metrics`` yields a full NetworkMetrics record.
        """
        if isinstance(kind, TrafficType) or kind in {t.value for t in TrafficType}:
            return self.simulate_traffic(kind)
        if kind == 'metrics':
            return self.simulate_metrics(interface_id)
        ranges = metric_ranges_for(interface_id)
        if kind not in ranges:
            raise ValueError(f"Unknown simulation kind: {kind}")
        precision = 2 if kind == 'packetLoss' else 1
        return round_half_up(self._uniform(ranges[kind]), precision)

    def simulate_metrics(self, interface_id=None):
        ranges = metric_ranges_for(interface_id)
        metrics = NetworkMetrics(
            download_mbps=round_half_up(self._uniform(ranges['download']), 1),
            upload_mbps=round_half_up(self._uniform(ranges['upload']), 1),
            latency_ms=round_half_up(self._uniform(ranges['latency']), 1),
            packet_loss_percent=round_half_up(self._uniform(ranges['packetLoss']), 2),
            timestamp=utc_now(),
            source=MetricsSource.SIMULATED,
            interface_id=interface_id,
        )
        logger.debug(f"Generated simulated metrics for {interface_id}: {metrics.to_dict()}")
        return metrics

    def simulate_traffic(self, traffic_type, duration_seconds=None, error=None):
        """Randomised traffic sample for a capture that ran but produced nothing usable"""
        traffic_type = TrafficType.from_value(traffic_type)
        duration = config.CAPTURE_DURATION if duration_seconds is None else duration_seconds
        min_packets, max_packets, min_size, max_size = SIMULATED_TRAFFIC_PROFILES[traffic_type]

        packet_count = self.rng.randint(min_packets, max_packets)
        byte_count = packet_count * self.rng.randint(min_size, max_size)
        logger.debug(f"Generated simulated {traffic_type.value} data: {packet_count} packets, {byte_count} bytes")
        return self._sample(traffic_type, packet_count, byte_count, duration, error)

    def baseline_traffic(self, traffic_type, duration_seconds=None, error=None):
        """Fixed baseline sample used when capture tooling is not installed"""
        traffic_type = TrafficType.from_value(traffic_type)
        duration = config.CAPTURE_DURATION if duration_seconds is None else duration_seconds
        packet_count, byte_count = BASELINE_TRAFFIC[traffic_type]
        return self._sample(traffic_type, packet_count, byte_count, duration, error)

    def simulate_ping(self):
        return PingSummary(
            latency_ms=round_half_up(self._uniform(DEFAULT_METRIC_RANGES['latency']), 1),
            packet_loss_percent=round_half_up(self._uniform(DEFAULT_METRIC_RANGES['packetLoss']), 2),
        )

    def mock_interfaces(self):
        return [dict(interface) for interface in MOCK_INTERFACES]

    def _sample(self, traffic_type, packet_count, byte_count, duration, error):
        bitrate = round_half_up(compute_bitrate_mbps(byte_count, duration), 3)
        return TrafficSample(
            traffic_type=traffic_type,
            packet_count=packet_count,
            byte_count=byte_count,
            bitrate_mbps=bitrate,
            quality_tier=classify(traffic_type, bitrate, packet_count),
            source=MetricsSource.SIMULATED,
            error=error,
        )
