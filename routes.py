import atexit
import logging

from flask import request, jsonify

import config
from app import app
from capture_pipeline import TelemetryPipeline, TrafficAnalysis
from fallback_simulator import FallbackSimulator
from models import TrafficType, utc_now
from polling_controller import MonitoringRegistry, PollingController
from traffic_classifier import MEDIA_TRAFFIC_TYPES
from validation import (
    MonitoringRequestSchema, TrafficRequestSchema, ValidationError,
    validate_hostname, validate_interface_param, validate_request_data,
)

logger = logging.getLogger(__name__)

# Shared service instances
fallback_simulator = FallbackSimulator()
telemetry_pipeline = TelemetryPipeline(simulator=fallback_simulator)


def _on_monitoring_stopped(error):
    logger.error(f"Monitoring session ended: {error}")


monitoring_registry = MonitoringRegistry(
    controller_factory=lambda: PollingController(pipeline=telemetry_pipeline, on_stopped=_on_monitoring_stopped)
)
atexit.register(monitoring_registry.stop_all)

NO_CACHE_HEADERS = {'Cache-Control': 'no-cache'}


def _invalid_request(message, details=None):
    payload = {'success': False, 'error': message}
    if details:
        payload['details'] = details
    return jsonify(payload), 400


# ================================
# METRICS
# ================================

@app.route('/api/network/metrics', methods=['GET'])
def get_network_metrics():
    """Current metrics for an interface"""
    interface_id, error = validate_interface_param(request.args.get('interface'))
    if error:
        return _invalid_request(error)

    # A running session already samples this interface; don't start a second capture on it
    cached = monitoring_registry.cached_sample(interface_id)
    if cached is not None:
        return jsonify(cached.to_dict()), 200, NO_CACHE_HEADERS

    try:
        metrics = telemetry_pipeline.get_metrics(interface_id)
    except Exception as e:
        logger.error(f"Error in network metrics API: {e}")
        metrics = fallback_simulator.simulate_metrics(interface_id)

    return jsonify(metrics.to_dict()), 200, NO_CACHE_HEADERS


@app.route('/api/network/fallback-metrics', methods=['GET'])
def get_fallback_metrics():
    """Simulated metrics for when the main endpoint is unavailable"""
    interface_id = request.args.get('interface') or 'unknown'
    return jsonify(fallback_simulator.simulate_metrics(interface_id).to_dict())


# ================================
# TRAFFIC
# ================================

@app.route('/api/network/traffic', methods=['POST'])
def capture_traffic():
    """Capture one traffic type on an interface"""
    data, errors = validate_request_data(TrafficRequestSchema)
    if errors:
        return _invalid_request('Invalid traffic request', errors)

    traffic_type = TrafficType.from_value(data['traffic_type'])
    try:
        capture_request = telemetry_pipeline.build_request(
            data['interface'], traffic_type, data.get('filter'), data.get('packet_count')
        )
        sample = telemetry_pipeline.capture_traffic(capture_request)
    except Exception as e:
        logger.error(f"Error in traffic API: {e}")
        sample = fallback_simulator.simulate_traffic(traffic_type, error=f"Failed to capture traffic: {e}")

    payload = sample.to_dict()
    payload['success'] = True
    payload['interface'] = data['interface']
    payload['timestamp'] = utc_now().isoformat()
    return jsonify(payload)


@app.route('/api/network/traffic/all', methods=['GET'])
def analyze_all_traffic():
    """Capture video, audio and voice traffic concurrently"""
    interface_id, error = validate_interface_param(request.args.get('interface'))
    if error:
        return _invalid_request(error)

    packet_count = request.args.get('count', type=int)
    if packet_count is not None and not 1 <= packet_count <= 10000:
        return _invalid_request('Packet count must be between 1 and 10000')

    try:
        analysis = telemetry_pipeline.analyze_all_traffic(interface_id, packet_count)
    except Exception as e:
        logger.error(f"Error in traffic analysis API: {e}")
        analysis = TrafficAnalysis(samples={
            traffic_type: fallback_simulator.simulate_traffic(
                traffic_type, error=f"Failed to analyze traffic: {e}"
            )
            for traffic_type in MEDIA_TRAFFIC_TYPES
        })

    payload = analysis.to_dict()
    payload['success'] = True
    payload['interface'] = interface_id
    return jsonify(payload)


# ================================
# INTERFACES AND CONNECTIVITY
# ================================

@app.route('/api/network/interfaces', methods=['GET'])
def get_interfaces():
    """Capture interfaces, from tshark, the OS, or a mock list"""
    interfaces, source = telemetry_pipeline.list_interfaces()
    return jsonify({
        'interfaces': interfaces,
        'source': source,
        'timestamp': utc_now().isoformat(),
    })


@app.route('/api/ping', methods=['GET'])
def ping():
    """Latency and packet loss to a host"""
    try:
        host = validate_hostname(request.args.get('host') or config.PING_TARGET or config.DEFAULT_PING_HOST)
    except ValidationError as e:
        return _invalid_request(str(e))

    summary, simulated = telemetry_pipeline.probe_connectivity(host)
    return jsonify({
        'success': True,
        'host': host,
        'latencyMs': summary.latency_ms,
        'packetLossPercent': summary.packet_loss_percent,
        'simulated': simulated,
        'timestamp': utc_now().isoformat(),
    })


# ================================
# MONITORING SESSIONS
# ================================

@app.route('/api/network/monitoring', methods=['GET'])
def get_monitoring_status():
    interface_id, error = validate_interface_param(request.args.get('interface'))
    if error:
        return _invalid_request(error)
    return jsonify({'success': True, 'session': monitoring_registry.status(interface_id)})


@app.route('/api/network/monitoring', methods=['POST'])
def control_monitoring():
    """Start or stop the monitoring session for an interface"""
    data, errors = validate_request_data(MonitoringRequestSchema)
    if errors:
        return _invalid_request('Invalid monitoring request', errors)

    interface_id = data['interface']
    if data['action'] == 'start':
        result = monitoring_registry.start(interface_id, data['interval_ms'])
        payload = {
            'success': True,
            'message': 'Monitoring started',
            'metrics': result.metrics.to_dict(),
            'session': monitoring_registry.status(interface_id),
        }
        if result.terminal is not None:
            payload['message'] = 'Monitoring stopped'
            payload['error'] = str(result.terminal)
        return jsonify(payload)

    stopped = monitoring_registry.stop(interface_id)
    return jsonify({
        'success': True,
        'message': 'Monitoring stopped' if stopped else 'Monitoring was not running',
        'session': monitoring_registry.status(interface_id),
    })
