"""
Per-media-type traffic classification.

Each traffic type is plain configuration: a capture filter plus a bitrate
threshold table. The tables are consumed by the UI color-coding and must
stay exactly as listed.
"""

import logging
from dataclasses import dataclass

from models import QualityTier, TrafficType

logger = logging.getLogger(__name__)

# Inclusive lower bounds in Mbps, highest tier first
VIDEO_THRESHOLDS = (
    (5.0, QualityTier.EXCELLENT),
    (2.0, QualityTier.GOOD),
    (1.0, QualityTier.FAIR),
)
AUDIO_THRESHOLDS = (
    (0.256, QualityTier.EXCELLENT),
    (0.128, QualityTier.GOOD),
    (0.064, QualityTier.FAIR),
)
VOICE_THRESHOLDS = (
    (0.128, QualityTier.EXCELLENT),
    (0.064, QualityTier.GOOD),
    (0.032, QualityTier.FAIR),
)


@dataclass(frozen=True)
class TrafficProbe:
    traffic_type: TrafficType
    capture_filter: str
    thresholds: tuple

    def classify(self, bitrate_mbps, packet_count):
        if packet_count <= 0:
            return QualityTier.NO_TRAFFIC
        for lower_bound, tier in self.thresholds:
            if bitrate_mbps >= lower_bound:
                return tier
        return QualityTier.POOR


TRAFFIC_PROBES = {
    TrafficType.VIDEO: TrafficProbe(TrafficType.VIDEO, 'tcp port 443', VIDEO_THRESHOLDS),
    TrafficType.AUDIO: TrafficProbe(TrafficType.AUDIO, 'tcp port 443 and less 1000', AUDIO_THRESHOLDS),
    TrafficType.VOICE: TrafficProbe(TrafficType.VOICE, 'udp port 5060 or udp portrange 10000-20000', VOICE_THRESHOLDS),
    # General traffic is graded on the video scale
    TrafficType.GENERIC: TrafficProbe(TrafficType.GENERIC, 'tcp or udp', VIDEO_THRESHOLDS),
}

MEDIA_TRAFFIC_TYPES = (TrafficType.VIDEO, TrafficType.AUDIO, TrafficType.VOICE)


def get_probe(traffic_type):
    return TRAFFIC_PROBES[TrafficType.from_value(traffic_type)]


def classify(traffic_type, bitrate_mbps, packet_count):
    """Map a capture result to a quality tier for its traffic type"""
    return get_probe(traffic_type).classify(bitrate_mbps, packet_count)


def _recommendation(severity, message, actions):
    return {'severity': severity, 'message': message, 'actions': actions}


def recommend_for_sample(sample):
    """Recommendations for a single traffic type's sample"""
    recommendations = []
    tier = sample.quality_tier
    traffic_type = sample.traffic_type

    if tier in (QualityTier.POOR, QualityTier.NO_TRAFFIC):
        if traffic_type == TrafficType.VIDEO:
            recommendations.append(_recommendation('high', 'Video quality is low or no traffic detected', [
                'Check network bandwidth allocation',
                'Verify video streaming service is active',
                'Ensure no background downloads are running',
                'Consider using a wired connection',
            ]))
        elif traffic_type == TrafficType.AUDIO:
            recommendations.append(_recommendation('high', 'Audio quality issues or no traffic detected', [
                'Check for network congestion',
                'Verify audio streaming service is active',
                'Ensure sufficient bandwidth for audio streams',
            ]))
        elif traffic_type == TrafficType.VOICE:
            recommendations.append(_recommendation('high', 'Voice quality is poor or no traffic detected', [
                'Check for packet loss and jitter',
                'Verify VoIP service is active',
                'Consider using a dedicated voice VLAN',
                'Monitor for bandwidth competition',
            ]))

    if traffic_type == TrafficType.VIDEO and sample.bitrate_mbps > 5:
        recommendations.append(_recommendation('medium', 'High video bandwidth usage detected', [
            'Monitor for unauthorized video streaming',
            'Consider implementing bandwidth limits',
            'Check for multiple HD video streams',
        ]))

    return recommendations


def recommend_overall(total_bitrate_mbps):
    if total_bitrate_mbps <= 0:
        return [_recommendation('high', 'No network traffic detected', [
            'Verify network interface is active',
            'Check network connectivity',
            'Ensure monitoring services are running',
            'Verify TShark installation and permissions',
        ])]
    if total_bitrate_mbps > 50:
        return [_recommendation('high', 'High overall network utilization', [
            'Implement traffic shaping',
            'Consider bandwidth upgrades',
            'Schedule non-critical traffic for off-peak hours',
            'Monitor for bandwidth-intensive applications',
        ])]
    return []


def generate_recommendations(samples, total_bitrate_mbps):
    """Recommendations keyed by traffic type tag, plus an ``overall`` entry"""
    recommendations = {
        traffic_type.value: recommend_for_sample(sample)
        for traffic_type, sample in samples.items()
    }
    recommendations['overall'] = recommend_overall(total_bitrate_mbps)
    return recommendations
