from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import math

# Interval durations below this are clamped to keep rate calculations finite
MIN_INTERVAL_DURATION = 0.1


def utc_now():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


class TrafficType(Enum):
    VIDEO = 'video'
    AUDIO = 'audio'
    VOICE = 'voice'
    GENERIC = 'generic'

    @classmethod
    def from_value(cls, value):
        """Look up a traffic type by its tag, defaulting to GENERIC for unknown tags"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.GENERIC


class MetricsSource(Enum):
    LIVE = 'live'
    PARTIAL = 'partial'
    SIMULATED = 'simulated'
    CACHED = 'cached'


class QualityTier(Enum):
    """Ordinal quality classification; the label is what the UI color-codes on"""
    NO_TRAFFIC = (0, 'No Traffic')
    POOR = (1, 'Poor')
    FAIR = (2, 'Fair')
    GOOD = (3, 'Good')
    EXCELLENT = (4, 'Excellent')

    def __init__(self, rank, label):
        self.rank = rank
        self.label = label

    def __lt__(self, other):
        if not isinstance(other, QualityTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, QualityTier):
            return NotImplemented
        return self.rank <= other.rank

    @classmethod
    def from_label(cls, label):
        for tier in cls:
            if tier.label == label:
                return tier
        raise ValueError(f"Unknown quality tier: {label}")


class SessionState(Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    STOPPING = 'stopping'


@dataclass(frozen=True)
class CaptureRequest:
    """One capture invocation against a network interface"""
    interface_id: str
    traffic_type: TrafficType = TrafficType.GENERIC
    filter_expression: str = ''
    packet_limit: int = 100
    duration_seconds: int = 5


@dataclass(frozen=True)
class InterfaceDescriptor:
    index: int
    system_id: str
    display_name: str

    def to_dict(self):
        return {
            'index': self.index,
            'id': self.system_id,
            'name': self.display_name,
        }


@dataclass
class IntervalStat:
    """Frame/byte totals over one IO statistics time slice"""
    interval_label: str
    frame_count: int
    byte_count: int
    duration_seconds: float = 1.0

    def __post_init__(self):
        if not isinstance(self.duration_seconds, (int, float)) or not math.isfinite(self.duration_seconds):
            self.duration_seconds = MIN_INTERVAL_DURATION
        self.duration_seconds = max(float(self.duration_seconds), MIN_INTERVAL_DURATION)

    @property
    def bits_per_second(self):
        return (self.byte_count * 8) / self.duration_seconds

    @property
    def bytes_per_second(self):
        return self.byte_count / self.duration_seconds

    @property
    def packets_per_second(self):
        return self.frame_count / self.duration_seconds

    @property
    def mbps(self):
        return self.bits_per_second / 1000000

    def to_dict(self):
        return {
            'interval': self.interval_label,
            'frames': self.frame_count,
            'bytes': self.byte_count,
            'durationSeconds': self.duration_seconds,
            'bitsPerSec': self.bits_per_second,
            'packetsPerSec': self.packets_per_second,
            'bytesPerSec': self.bytes_per_second,
            'mbps': self.mbps,
        }


@dataclass
class NetworkMetrics:
    download_mbps: float = 0.0
    upload_mbps: float = 0.0
    latency_ms: float = 0.0
    packet_loss_percent: float = 0.0
    timestamp: datetime = field(default_factory=utc_now)
    source: MetricsSource = MetricsSource.LIVE
    interface_id: Optional[str] = None

    @property
    def simulated(self):
        return self.source == MetricsSource.SIMULATED

    def with_source(self, source):
        """Copy of these metrics re-tagged with another source"""
        return NetworkMetrics(
            download_mbps=self.download_mbps,
            upload_mbps=self.upload_mbps,
            latency_ms=self.latency_ms,
            packet_loss_percent=self.packet_loss_percent,
            timestamp=self.timestamp,
            source=source,
            interface_id=self.interface_id,
        )

    def to_dict(self):
        return {
            'download': self.download_mbps,
            'upload': self.upload_mbps,
            'latency': self.latency_ms,
            'packetLoss': self.packet_loss_percent,
            'timestamp': self.timestamp.isoformat(),
            'source': self.source.value,
            'interface': self.interface_id,
            'simulated': self.simulated,
        }

    @classmethod
    def from_dict(cls, data):
        timestamp = data.get('timestamp')
        return cls(
            download_mbps=float(data.get('download', 0)),
            upload_mbps=float(data.get('upload', 0)),
            latency_ms=float(data.get('latency', 0)),
            packet_loss_percent=float(data.get('packetLoss', 0)),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else utc_now(),
            source=MetricsSource(data.get('source', MetricsSource.LIVE.value)),
            interface_id=data.get('interface'),
        )


@dataclass
class TrafficSample:
    traffic_type: TrafficType
    packet_count: int = 0
    byte_count: int = 0
    bitrate_mbps: float = 0.0
    quality_tier: QualityTier = QualityTier.NO_TRAFFIC
    source: MetricsSource = MetricsSource.LIVE
    general_capture: bool = False
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        self.packet_count = max(0, int(self.packet_count))
        self.byte_count = max(0, int(self.byte_count))
        if not math.isfinite(self.bitrate_mbps) or self.bitrate_mbps < 0:
            self.bitrate_mbps = 0.0

    @property
    def simulated(self):
        return self.source == MetricsSource.SIMULATED

    def to_dict(self):
        data = {
            'trafficType': self.traffic_type.value,
            'packetCount': self.packet_count,
            'byteCount': self.byte_count,
            'bitrate': self.bitrate_mbps,
            'quality': self.quality_tier.label,
            'source': self.source.value,
            'timestamp': self.timestamp.isoformat(),
        }
        if self.simulated:
            data['simulated'] = True
        if self.general_capture:
            data['generalCapture'] = True
        if self.error:
            data['error'] = self.error
        return data


@dataclass(frozen=True)
class PingSummary:
    latency_ms: Optional[float]
    packet_loss_percent: Optional[float]
    parsed: bool = True

    def to_dict(self):
        return {
            'latencyMs': self.latency_ms,
            'packetLossPercent': self.packet_loss_percent,
            'parsed': self.parsed,
        }


# Sentinel returned when no supported ping format matched
PING_UNPARSED = PingSummary(latency_ms=None, packet_loss_percent=None, parsed=False)


@dataclass
class MonitoringSession:
    """State of one interface's recurring sampling loop"""
    interface_id: str
    interval_ms: int
    state: SessionState = SessionState.IDLE
    consecutive_failure_count: int = 0
    last_sample: Optional[NetworkMetrics] = None
    started_at: Optional[datetime] = None
    tick_count: int = 0

    @property
    def running(self):
        return self.state == SessionState.RUNNING

    def to_dict(self):
        return {
            'interface': self.interface_id,
            'intervalMs': self.interval_ms,
            'state': self.state.value,
            'consecutiveFailureCount': self.consecutive_failure_count,
            'lastSample': self.last_sample.to_dict() if self.last_sample else None,
            'startedAt': self.started_at.isoformat() if self.started_at else None,
            'tickCount': self.tick_count,
        }

    @classmethod
    def from_dict(cls, data):
        """Restore a session snapshot; restored sessions are never running"""
        last_sample = data.get('lastSample')
        started_at = data.get('startedAt')
        return cls(
            interface_id=data['interface'],
            interval_ms=int(data['intervalMs']),
            state=SessionState.IDLE,
            consecutive_failure_count=int(data.get('consecutiveFailureCount', 0)),
            last_sample=NetworkMetrics.from_dict(last_sample) if last_sample else None,
            started_at=datetime.fromisoformat(started_at) if started_at else None,
            tick_count=int(data.get('tickCount', 0)),
        )


def compute_bitrate_mbps(byte_count, duration_seconds):
    """Average bitrate in Mbps over a capture window, clamping the window like IntervalStat"""
    duration = duration_seconds if isinstance(duration_seconds, (int, float)) and math.isfinite(duration_seconds) else 0
    duration = max(float(duration), MIN_INTERVAL_DURATION)
    return (max(0, byte_count) * 8) / duration / 1000000
