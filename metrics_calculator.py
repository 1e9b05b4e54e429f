"""
Network metric derivation from IO statistics intervals.

Latency and packet loss are estimates derived from throughput, not measured
round-trip times. The download/upload split and both heuristics are policy
constants from config and can be overridden per calculator.
"""

import logging
import math
import random
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

import config
from models import NetworkMetrics, MetricsSource, utc_now

logger = logging.getLogger(__name__)

RATE_PRECISION = 1
LATENCY_PRECISION = 1
PACKET_LOSS_PRECISION = 2


def round_half_up(value, places):
    """Round to a fixed number of decimal places, halves away from zero"""
    try:
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return 0.0


def finite_or(value, fallback=0.0):
    """Replace NaN/Infinity (or non-numbers) with a fallback value"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    return value if math.isfinite(value) else fallback


def clamp_percent(value):
    return min(100.0, max(0.0, finite_or(value)))


class MetricsCalculator:
    """Converts parsed interval statistics into NetworkMetrics"""

    def __init__(self, rng=None, download_ratio=None, upload_ratio=None,
                 base_latency_ms=None, latency_scale_ms=None, latency_jitter_ms=None):
        self.rng = rng or random.Random()
        self.download_ratio = config.DOWNLOAD_RATIO if download_ratio is None else download_ratio
        self.upload_ratio = config.UPLOAD_RATIO if upload_ratio is None else upload_ratio
        self.base_latency_ms = config.BASE_LATENCY_MS if base_latency_ms is None else base_latency_ms
        self.latency_scale_ms = config.LATENCY_SCALE_MS if latency_scale_ms is None else latency_scale_ms
        self.latency_jitter_ms = config.LATENCY_JITTER_MS if latency_jitter_ms is None else latency_jitter_ms

    def estimate_latency(self, mbps):
        """Heuristic latency estimate, decreasing as throughput rises"""
        mbps = max(0.0, finite_or(mbps))
        latency = self.base_latency_ms + self.latency_scale_ms / (1 + mbps / 10)
        latency += self.rng.uniform(-self.latency_jitter_ms, self.latency_jitter_ms)
        return max(0.0, finite_or(latency, self.base_latency_ms))

    def estimate_packet_loss(self, packets_per_second, mbps):
        """Heuristic packet loss estimate from packet rate and throughput thresholds"""
        packet_loss = config.BASE_PACKET_LOSS
        if finite_or(packets_per_second) > 0:
            if packets_per_second > config.HIGH_PACKET_RATE:
                packet_loss += config.HIGH_PACKET_RATE_LOSS
            if finite_or(mbps) > config.HIGH_THROUGHPUT_MBPS:
                packet_loss += config.HIGH_THROUGHPUT_LOSS
        packet_loss += self.rng.uniform(-config.PACKET_LOSS_JITTER, config.PACKET_LOSS_JITTER)
        return clamp_percent(packet_loss)

    def derive_metrics(self, intervals, interface_id=None):
        """
        Derive metrics from the most recent interval.

        An empty interval list yields an all-zero record tagged ``partial``
        so the caller can substitute fallback data.
        """
        if not intervals:
            logger.warning("No statistics available for metrics calculation")
            return empty_metrics(interface_id)

        current = intervals[-1]
        mbps = max(0.0, finite_or(current.mbps))
        packets_per_second = max(0.0, finite_or(current.packets_per_second))

        metrics = self._build(
            download=mbps * self.download_ratio,
            upload=mbps * self.upload_ratio,
            latency=self.estimate_latency(mbps),
            packet_loss=self.estimate_packet_loss(packets_per_second, mbps),
            source=MetricsSource.LIVE,
            interface_id=interface_id,
        )
        logger.debug(f"Calculated network metrics: {metrics.to_dict()}")
        return metrics

    def estimate_from_packet_count(self, packet_count, duration_seconds, interface_id=None):
        """
        Rough metrics when only the "N packets captured" summary is available.

        Assumes full-size frames over the capture duration; tagged ``partial``.
        """
        if packet_count <= 0:
            return empty_metrics(interface_id)

        duration = max(finite_or(duration_seconds, 1.0), 0.1)
        packets_per_second = packet_count / duration
        estimated_mbps = packets_per_second * config.ESTIMATED_FRAME_BYTES * 8 / 1000000

        return self._build(
            download=estimated_mbps * self.download_ratio,
            upload=estimated_mbps * self.upload_ratio,
            latency=max(0.0, 50 - packets_per_second / 10),
            packet_loss=1 / (1 + packets_per_second / 10),
            source=MetricsSource.PARTIAL,
            interface_id=interface_id,
        )

    def _build(self, download, upload, latency, packet_loss, source, interface_id):
        return NetworkMetrics(
            download_mbps=round_half_up(max(0.0, finite_or(download)), RATE_PRECISION),
            upload_mbps=round_half_up(max(0.0, finite_or(upload)), RATE_PRECISION),
            latency_ms=round_half_up(max(0.0, finite_or(latency)), LATENCY_PRECISION),
            packet_loss_percent=round_half_up(clamp_percent(packet_loss), PACKET_LOSS_PRECISION),
            timestamp=utc_now(),
            source=source,
            interface_id=interface_id,
        )


def empty_metrics(interface_id=None):
    """The distinguished zero-input record"""
    return NetworkMetrics(
        download_mbps=0.0,
        upload_mbps=0.0,
        latency_ms=0.0,
        packet_loss_percent=0.0,
        timestamp=utc_now(),
        source=MetricsSource.PARTIAL,
        interface_id=interface_id,
    )


def apply_ping_summary(metrics, summary):
    """Replace estimated latency/loss with values measured by a connectivity probe"""
    if not summary.parsed:
        return metrics
    if summary.latency_ms is not None and math.isfinite(summary.latency_ms):
        metrics.latency_ms = round_half_up(max(0.0, summary.latency_ms), LATENCY_PRECISION)
    if summary.packet_loss_percent is not None:
        metrics.packet_loss_percent = round_half_up(clamp_percent(summary.packet_loss_percent), PACKET_LOSS_PRECISION)
    return metrics
