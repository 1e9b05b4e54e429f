#!/usr/bin/env python3
"""
NetGest Telemetry Client - polls a running telemetry server from the command line
"""

import argparse
import logging
import time

import requests

import config

logger = logging.getLogger(__name__)


class TelemetryClient:
    def __init__(self, server_url, timeout=None):
        self.server_url = server_url.rstrip('/')
        self.timeout = timeout or (config.CAPTURE_DURATION + config.CAPTURE_TIMEOUT_MARGIN + 5)
        self.session = requests.Session()
        self.running = False

    def get_metrics(self, interface_id):
        response = self.session.get(
            f"{self.server_url}/api/network/metrics",
            params={'interface': interface_id},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def get_traffic(self, interface_id, traffic_type, capture_filter=None, packet_count=None):
        body = {'interface': interface_id, 'trafficType': traffic_type}
        if capture_filter:
            body['filter'] = capture_filter
        if packet_count:
            body['packetCount'] = packet_count
        response = self.session.post(f"{self.server_url}/api/network/traffic", json=body, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def poll(self, interface_id, interval_seconds, iterations=None):
        """Fetch metrics repeatedly; request errors are logged and polling continues"""
        self.running = True
        count = 0
        try:
            while self.running:
                try:
                    self._log_metrics(self.get_metrics(interface_id))
                except requests.RequestException as e:
                    logger.warning(f"Metrics request failed: {e}")
                count += 1
                if iterations is not None and count >= iterations:
                    break
                time.sleep(interval_seconds)
        except KeyboardInterrupt:
            logger.info("Received interrupt, shutting down...")
        finally:
            self.running = False

    def stop(self):
        self.running = False

    def _log_metrics(self, metrics):
        logger.info(
            f"[{metrics.get('source')}] down {metrics.get('download')} Mbps | "
            f"up {metrics.get('upload')} Mbps | latency {metrics.get('latency')} ms | "
            f"loss {metrics.get('packetLoss')}%"
        )


def main():
    parser = argparse.ArgumentParser(description='NetGest Telemetry Client')
    parser.add_argument('--server', default=f'http://localhost:{config.SERVER_PORT}', help='Server URL')
    parser.add_argument('--interface', required=True, help='Interface index, name or device path')
    parser.add_argument('--interval', type=float, default=config.DEFAULT_POLL_INTERVAL_MS / 1000,
                        help='Polling interval in seconds')
    parser.add_argument('--once', action='store_true', help='Fetch a single sample and exit')
    parser.add_argument('--traffic', choices=['video', 'audio', 'voice', 'generic'],
                        help='Request a traffic sample of this type instead of metrics')
    parser.add_argument('--filter', help='Capture filter for --traffic')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    client = TelemetryClient(args.server)

    if args.traffic:
        try:
            sample = client.get_traffic(args.interface, args.traffic, args.filter)
        except requests.RequestException as e:
            logger.error(f"Traffic request failed: {e}")
            return 1
        logger.info(
            f"{sample.get('trafficType')}: {sample.get('packetCount')} packets, "
            f"{sample.get('byteCount')} bytes, {sample.get('bitrate')} Mbps, quality {sample.get('quality')}"
            + (' (simulated)' if sample.get('simulated') else '')
        )
        return 0

    client.poll(args.interface, args.interval, iterations=1 if args.once else None)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
