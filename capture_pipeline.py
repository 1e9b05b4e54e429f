"""
Capture-to-metrics pipeline.

``collect_*`` and ``sample_*`` methods raise TelemetryError subclasses so the
polling controller can count failures. The ``get_*``/``capture_*`` methods
used by the HTTP layer never raise: every failure ends in FallbackSimulator
output tagged ``simulated``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime

import config
from connectivity_probe import ConnectivityProbe
from errors import (
    CaptureTimeout, NoInterfacesFound, ParseEmpty, ParseMalformed, TelemetryError, ToolNotAvailable,
)
from fallback_simulator import FallbackSimulator
from metrics_calculator import MetricsCalculator, apply_ping_summary, round_half_up
from models import (
    CaptureRequest, MetricsSource, TrafficSample, TrafficType, compute_bitrate_mbps, utc_now,
)
from output_parser import (
    IO_STATISTICS_MARKER, parse_frame_lengths, parse_io_statistics_table, parse_packets_captured,
    summarize_frame_lengths,
)
from traffic_classifier import MEDIA_TRAFFIC_TYPES, classify, generate_recommendations, get_probe
from tshark_service import TSharkService, list_system_interfaces

logger = logging.getLogger(__name__)


def is_empty_metrics(metrics):
    return (metrics.source == MetricsSource.PARTIAL
            and metrics.download_mbps == 0
            and metrics.upload_mbps == 0
            and metrics.latency_ms == 0
            and metrics.packet_loss_percent == 0)


def combine_sources(sources):
    sources = set(sources)
    if sources == {MetricsSource.LIVE}:
        return MetricsSource.LIVE
    if sources == {MetricsSource.SIMULATED}:
        return MetricsSource.SIMULATED
    return MetricsSource.PARTIAL


@dataclass
class TrafficAnalysis:
    """Joined result of one concurrent capture per media type"""
    samples: dict
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def total_packets(self):
        return sum(sample.packet_count for sample in self.samples.values())

    @property
    def total_bytes(self):
        return sum(sample.byte_count for sample in self.samples.values())

    @property
    def total_bitrate(self):
        return round_half_up(sum(sample.bitrate_mbps for sample in self.samples.values()), 3)

    @property
    def source(self):
        return combine_sources(sample.source for sample in self.samples.values())

    def to_dict(self):
        data = {traffic_type.value: sample.to_dict() for traffic_type, sample in self.samples.items()}
        data['total'] = {
            'packets': self.total_packets,
            'bytes': self.total_bytes,
            'bitrate': self.total_bitrate,
        }
        data['source'] = self.source.value
        data['simulated'] = self.source == MetricsSource.SIMULATED
        data['recommendations'] = generate_recommendations(self.samples, self.total_bitrate)
        data['timestamp'] = self.timestamp.isoformat()
        return data


class TelemetryPipeline:
    """Runs capture tools, parses their output and derives metrics"""

    def __init__(self, tshark=None, calculator=None, simulator=None, probe=None,
                 ping_target=None, capture_duration=None, packet_count=None):
        self.tshark = tshark or TSharkService()
        self.calculator = calculator or MetricsCalculator()
        self.simulator = simulator or FallbackSimulator()
        self.probe = probe or ConnectivityProbe()
        self.ping_target = config.PING_TARGET if ping_target is None else ping_target
        self.capture_duration = config.CAPTURE_DURATION if capture_duration is None else capture_duration
        self.packet_count = config.CAPTURE_PACKET_COUNT if packet_count is None else packet_count

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def _resolve_device(self, interface_id):
        if not self.tshark.check_installation():
            raise ToolNotAvailable(f"TShark not found at {self.tshark.tshark_path}")
        interfaces = self.tshark.list_interfaces()
        return self.tshark.resolve_interface(interface_id, interfaces)

    def sample_metrics(self, interface_id):
        """
        One IO-statistics capture turned into metrics.

        Returns the zero-input ``partial`` record when the capture produced no
        usable rows; raises TelemetryError when the tool could not be run.
        A capture that timed out after printing statistics is kept and tagged
        ``partial``. ParseMalformed is raised when the statistics block is
        present but none of its rows could be read.
        """
        device = self._resolve_device(interface_id)
        result = self.tshark.capture_io_statistics(device, self.capture_duration)

        if result.error is not None and not result.output.strip():
            raise result.error.to_telemetry_error()

        stats = parse_io_statistics_table(result.output, self.capture_duration)
        packet_count = 0 if stats else parse_packets_captured(result.output)
        if not stats and packet_count == 0:
            if result.timed_out:
                raise CaptureTimeout(result.error.message)
            if IO_STATISTICS_MARKER in result.output:
                raise ParseMalformed(f"IO statistics for {interface_id} contained no readable rows")

        if stats:
            metrics = self.calculator.derive_metrics(stats, interface_id)
        elif packet_count > 0:
            logger.warning(f"No IO statistics found for {interface_id}, estimating from {packet_count} packets")
            metrics = self.calculator.estimate_from_packet_count(packet_count, self.capture_duration, interface_id)
        else:
            metrics = self.calculator.derive_metrics([], interface_id)

        if result.timed_out:
            logger.warning(f"Capture on {interface_id} timed out, keeping partial statistics")
            metrics = metrics.with_source(MetricsSource.PARTIAL)

        if self.ping_target and not is_empty_metrics(metrics):
            try:
                metrics = apply_ping_summary(metrics, self.probe.probe(self.ping_target))
            except TelemetryError as e:
                logger.warning(f"Connectivity probe failed, keeping estimated latency: {e}")

        return metrics

    def collect_metrics(self, interface_id):
        """Like sample_metrics, but an empty capture is raised as ParseEmpty"""
        metrics = self.sample_metrics(interface_id)
        if is_empty_metrics(metrics):
            raise ParseEmpty(f"Capture on {interface_id} produced no usable statistics")
        return metrics

    def get_metrics(self, interface_id):
        """Metrics for an interface, substituting simulated values on any failure"""
        try:
            return self.collect_metrics(interface_id)
        except TelemetryError as e:
            logger.warning(f"Using simulated metrics for {interface_id}: {e}")
            return self.simulator.simulate_metrics(interface_id)

    # ------------------------------------------------------------------
    # Traffic
    # ------------------------------------------------------------------

    def build_request(self, interface_id, traffic_type, filter_expression=None, packet_count=None):
        traffic_type = TrafficType.from_value(traffic_type)
        return CaptureRequest(
            interface_id=interface_id,
            traffic_type=traffic_type,
            filter_expression=filter_expression or get_probe(traffic_type).capture_filter,
            packet_limit=packet_count or self.packet_count,
            duration_seconds=self.capture_duration,
        )

    def _capture_with_filter(self, device, capture_filter, request):
        result = self.tshark.capture_frame_lengths(
            device, capture_filter, request.packet_limit, request.duration_seconds
        )
        lengths = parse_frame_lengths(result.output)
        if not lengths:
            reason = result.error.message if result.error else 'no packets captured'
            logger.info(f"Capture with filter {capture_filter!r} yielded nothing ({reason})")
            return None

        packet_count, byte_count = summarize_frame_lengths(lengths)
        bitrate = round_half_up(compute_bitrate_mbps(byte_count, request.duration_seconds), 3)
        source = MetricsSource.PARTIAL if result.timed_out else MetricsSource.LIVE
        logger.debug(f"Captured {packet_count} packets, {byte_count} bytes with filter {capture_filter!r}")
        return TrafficSample(
            traffic_type=request.traffic_type,
            packet_count=packet_count,
            byte_count=byte_count,
            bitrate_mbps=bitrate,
            quality_tier=classify(request.traffic_type, bitrate, packet_count),
            source=source,
        )

    def capture_traffic(self, request):
        """
        Capture one traffic type, retrying once with the widened filter.

        Never raises: a missing tool yields baseline data, an empty or failed
        capture yields simulated data.
        """
        try:
            device = self._resolve_device(request.interface_id)
        except (ToolNotAvailable, NoInterfacesFound, CaptureTimeout) as e:
            logger.warning(f"Capture tooling unavailable, using baseline {request.traffic_type.value} data: {e}")
            return self.simulator.baseline_traffic(request.traffic_type, request.duration_seconds, error=str(e))

        sample = self._capture_with_filter(device, request.filter_expression, request)
        if sample is not None:
            return sample

        if request.filter_expression != config.WIDENED_CAPTURE_FILTER:
            logger.warning(f"No packets captured for {request.traffic_type.value}, trying general capture")
            sample = self._capture_with_filter(device, config.WIDENED_CAPTURE_FILTER, request)
            if sample is not None:
                sample.general_capture = True
                return sample

        logger.warning(f"All capture attempts failed for {request.traffic_type.value}, using simulated data")
        return self.simulator.simulate_traffic(
            request.traffic_type, request.duration_seconds, error='No packets captured'
        )

    def analyze_all_traffic(self, interface_id, packet_count=None):
        """Capture every media type concurrently and join the results"""
        requests_by_type = {
            traffic_type: self.build_request(interface_id, traffic_type, packet_count=packet_count)
            for traffic_type in MEDIA_TRAFFIC_TYPES
        }
        with ThreadPoolExecutor(max_workers=len(requests_by_type)) as pool:
            futures = {
                traffic_type: pool.submit(self.capture_traffic, request)
                for traffic_type, request in requests_by_type.items()
            }
            samples = {traffic_type: future.result() for traffic_type, future in futures.items()}
        return TrafficAnalysis(samples=samples)

    # ------------------------------------------------------------------
    # Connectivity and interfaces
    # ------------------------------------------------------------------

    def probe_connectivity(self, host):
        """Returns (PingSummary, simulated)"""
        try:
            summary = self.probe.probe(host)
            if summary.parsed:
                return summary, False
        except TelemetryError as e:
            logger.warning(f"Connectivity probe to {host} failed: {e}")
        return self.simulator.simulate_ping(), True

    def list_interfaces(self):
        """Returns (interfaces, source) from tshark, the OS table, or a mock list"""
        try:
            if self.tshark.check_installation():
                interfaces = self.tshark.list_interfaces()
                if interfaces:
                    return [interface.to_dict() for interface in interfaces], 'tshark'
        except TelemetryError as e:
            logger.warning(f"Error getting TShark interfaces: {e}")

        interfaces = list_system_interfaces()
        if interfaces:
            return interfaces, 'system'

        logger.warning("No interfaces found, using mock interfaces")
        return self.simulator.mock_interfaces(), 'mock'
