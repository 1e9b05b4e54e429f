import unittest

from command_executor import ExecErrorKind
from connectivity_probe import ConnectivityProbe
from errors import CaptureTimeout, ToolNotAvailable
from mock_tools import (
    NOT_FOUND, PING_LINUX_OUTPUT, PING_WINDOWS_OUTPUT, TIMED_OUT, FakeExecutor, failure, ok,
)


class TestConnectivityProbe(unittest.TestCase):

    def test_unix_command(self):
        probe = ConnectivityProbe(executor=FakeExecutor(), ping_path='ping', count=4, platform_name='Linux')
        self.assertEqual(probe.build_command('8.8.8.8'), ['ping', '-c', '4', '8.8.8.8'])

    def test_windows_command(self):
        probe = ConnectivityProbe(executor=FakeExecutor(), ping_path='ping', count=2, platform_name='Windows')
        self.assertEqual(probe.build_command('example.com'), ['ping', '-n', '2', 'example.com'])

    def test_linux_summary(self):
        executor = FakeExecutor(default=ok(PING_LINUX_OUTPUT))
        probe = ConnectivityProbe(executor=executor, timeout=7, platform_name='linux')

        summary = probe.probe('8.8.8.8')

        self.assertAlmostEqual(summary.latency_ms, 12.345)
        self.assertEqual(summary.packet_loss_percent, 25.0)
        self.assertEqual(executor.calls[0][1], 7)

    def test_windows_summary(self):
        probe = ConnectivityProbe(executor=FakeExecutor(default=ok(PING_WINDOWS_OUTPUT)), platform_name='windows')
        self.assertEqual(probe.probe('8.8.8.8').latency_ms, 14.0)

    def test_non_zero_exit_still_parsed(self):
        output = "4 packets transmitted, 0 received, 100% packet loss, time 3053ms\n"
        result = failure(ExecErrorKind.TOOL_FAILURE, stdout=output)
        probe = ConnectivityProbe(executor=FakeExecutor(default=result), platform_name='linux')

        summary = probe.probe('10.255.255.1')

        self.assertTrue(summary.parsed)
        self.assertEqual(summary.packet_loss_percent, 100.0)

    def test_unrecognized_output(self):
        probe = ConnectivityProbe(executor=FakeExecutor(default=ok('ping: unknown host')), platform_name='linux')
        self.assertFalse(probe.probe('nowhere.invalid').parsed)

    def test_missing_ping(self):
        probe = ConnectivityProbe(executor=FakeExecutor(default=NOT_FOUND), platform_name='linux')
        with self.assertRaises(ToolNotAvailable):
            probe.probe('8.8.8.8')

    def test_timeout(self):
        probe = ConnectivityProbe(executor=FakeExecutor(default=TIMED_OUT), platform_name='linux')
        with self.assertRaises(CaptureTimeout):
            probe.probe('8.8.8.8')


if __name__ == '__main__':
    unittest.main()
