import unittest
from unittest.mock import MagicMock, patch

import requests

from telemetry_client import TelemetryClient, main


def json_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestTelemetryClient(unittest.TestCase):

    def setUp(self):
        self.client = TelemetryClient('http://localhost:5000/', timeout=3)
        self.client.session = MagicMock()

    def test_get_metrics(self):
        self.client.session.get.return_value = json_response({'download': 7.0, 'source': 'live'})

        metrics = self.client.get_metrics('eth0')

        self.assertEqual(metrics['download'], 7.0)
        self.client.session.get.assert_called_once_with(
            'http://localhost:5000/api/network/metrics', params={'interface': 'eth0'}, timeout=3
        )

    def test_get_traffic_body(self):
        self.client.session.post.return_value = json_response({'trafficType': 'voice'})

        self.client.get_traffic('eth0', 'voice', capture_filter='udp', packet_count=20)

        _, kwargs = self.client.session.post.call_args
        self.assertEqual(kwargs['json'], {
            'interface': 'eth0', 'trafficType': 'voice', 'filter': 'udp', 'packetCount': 20,
        })

    @patch('telemetry_client.time.sleep')
    def test_poll_survives_request_errors(self, mock_sleep):
        self.client.session.get.side_effect = [
            requests.ConnectionError('refused'),
            json_response({'download': 1.0}),
            json_response({'download': 2.0}),
        ]

        self.client.poll('eth0', 0.5, iterations=3)

        self.assertEqual(self.client.session.get.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)
        self.assertFalse(self.client.running)


class TestMain(unittest.TestCase):

    @patch('telemetry_client.TelemetryClient')
    def test_once(self, mock_client_class):
        with patch('sys.argv', ['netgest-client', '--interface', 'eth0', '--once']):
            self.assertEqual(main(), 0)
        mock_client_class.return_value.poll.assert_called_once_with('eth0', 5.0, iterations=1)

    @patch('telemetry_client.TelemetryClient')
    def test_traffic_failure_exit_code(self, mock_client_class):
        mock_client_class.return_value.get_traffic.side_effect = requests.ConnectionError('refused')
        with patch('sys.argv', ['netgest-client', '--interface', 'eth0', '--traffic', 'video']):
            self.assertEqual(main(), 1)


if __name__ == '__main__':
    unittest.main()
