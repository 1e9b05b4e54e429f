import unittest

from models import PING_UNPARSED
from output_parser import (
    parse_frame_lengths, parse_interface_list, parse_io_statistics_table,
    parse_packets_captured, parse_ping_summary, summarize_frame_lengths,
)
from mock_tools import (
    INTERFACE_LIST_OUTPUT, IO_STAT_OUTPUT, LEGACY_IO_STAT_OUTPUT,
    PING_LINUX_OUTPUT, PING_MACOS_OUTPUT, PING_WINDOWS_OUTPUT,
)

GARBAGE_INPUTS = [None, '', '\x00\x01\x02', b'\xff\xfe\xfd', '|||\n---\n===', 'x' * 10000]


class TestInterfaceList(unittest.TestCase):

    def test_two_interfaces(self):
        text = "1. \\Device\\NPF_{A1} (Ethernet)\n2. \\Device\\NPF_Loopback (Loopback)\n"
        interfaces = parse_interface_list(text)

        self.assertEqual(len(interfaces), 2)
        self.assertEqual(interfaces[0].index, 1)
        self.assertEqual(interfaces[0].system_id, '\\Device\\NPF_{A1}')
        self.assertEqual(interfaces[0].display_name, 'Ethernet')
        self.assertEqual(interfaces[1].index, 2)
        self.assertEqual(interfaces[1].display_name, 'Loopback')

    def test_skips_unmatched_lines(self):
        text = "Capturing...\n" + INTERFACE_LIST_OUTPUT + "warning: something odd\n"
        interfaces = parse_interface_list(text)
        self.assertEqual([i.display_name for i in interfaces], ['Ethernet', 'Loopback', 'Wi-Fi'])

    def test_to_dict(self):
        interface = parse_interface_list(INTERFACE_LIST_OUTPUT)[1]
        self.assertEqual(interface.to_dict(), {'index': 2, 'id': '\\Device\\NPF_Loopback', 'name': 'Loopback'})

    def test_garbage_yields_empty_list(self):
        for text in GARBAGE_INPUTS:
            self.assertEqual(parse_interface_list(text), [])


class TestFrameLengths(unittest.TestCase):

    def test_non_numeric_lines_skipped(self):
        lengths = parse_frame_lengths("64\n128\nabc\n256")
        self.assertEqual(lengths, [64, 128, 256])
        self.assertEqual(summarize_frame_lengths(lengths), (3, 448))

    def test_whitespace_and_signs(self):
        self.assertEqual(parse_frame_lengths("  60  \r\n-5\n1.5\n\n1514\n"), [60, 1514])

    def test_empty_summary(self):
        self.assertEqual(summarize_frame_lengths([]), (0, 0))

    def test_bytes_input(self):
        self.assertEqual(parse_frame_lengths(b"100\n200\n"), [100, 200])

    def test_garbage_yields_empty_list(self):
        for text in GARBAGE_INPUTS:
            self.assertEqual(parse_frame_lengths(text), [])

    def test_huge_values_ignored(self):
        self.assertEqual(parse_frame_lengths("9" * 40 + "\n42"), [42])


class TestPacketsCaptured(unittest.TestCase):

    def test_summary_line(self):
        self.assertEqual(parse_packets_captured("Capturing on 'eth0'\n40 packets captured\n"), 40)
        self.assertEqual(parse_packets_captured("1 packet captured"), 1)

    def test_absent(self):
        for text in GARBAGE_INPUTS:
            self.assertEqual(parse_packets_captured(text), 0)


class TestIoStatistics(unittest.TestCase):

    def test_pipe_table(self):
        stats = parse_io_statistics_table(IO_STAT_OUTPUT, capture_duration=5)

        # the abc/xyz row is dropped
        self.assertEqual(len(stats), 3)
        self.assertEqual(stats[0].interval_label, '0 <> 1')
        self.assertEqual(stats[0].frame_count, 10)
        self.assertEqual(stats[0].byte_count, 5000)
        self.assertEqual(stats[0].duration_seconds, 1.0)
        self.assertEqual(stats[1].byte_count, 62500)
        self.assertAlmostEqual(stats[1].mbps, 0.5)

    def test_dur_row_uses_capture_duration(self):
        last = parse_io_statistics_table(IO_STAT_OUTPUT, capture_duration=5)[-1]
        self.assertEqual(last.duration_seconds, 2.0)
        self.assertAlmostEqual(last.mbps, 5.0)
        self.assertAlmostEqual(last.packets_per_second, 1000.0)

    def test_legacy_dash_labels(self):
        stats = parse_io_statistics_table(LEGACY_IO_STAT_OUTPUT)
        self.assertEqual([(s.frame_count, s.byte_count) for s in stats], [(4, 1000), (8, 125000)])
        self.assertAlmostEqual(stats[1].mbps, 1.0)

    def test_rows_outside_section_ignored(self):
        text = "| 0 <> 1 | 99 | 99999 |\n" + IO_STAT_OUTPUT + "| 5 <> 6 | 7 | 700 |\n"
        stats = parse_io_statistics_table(text)
        self.assertEqual(len(stats), 3)
        self.assertNotIn(99, [s.frame_count for s in stats])

    def test_header_without_rows(self):
        text = "IO Statistics\n| Interval | Frames | Bytes |\n===\n"
        self.assertEqual(parse_io_statistics_table(text), [])

    def test_zero_duration_is_clamped(self):
        text = "IO Statistics\n| Interval | Frames | Bytes |\n| 1 <> 1 | 5 | 1000 |\n===\n"
        stat = parse_io_statistics_table(text)[0]
        self.assertEqual(stat.duration_seconds, 0.1)
        self.assertAlmostEqual(stat.bytes_per_second, 10000.0)

    def test_garbage_yields_empty_list(self):
        for text in GARBAGE_INPUTS:
            self.assertEqual(parse_io_statistics_table(text), [])


class TestPingSummary(unittest.TestCase):

    def test_linux(self):
        summary = parse_ping_summary(PING_LINUX_OUTPUT, 'linux')
        self.assertTrue(summary.parsed)
        self.assertAlmostEqual(summary.latency_ms, 12.345)
        self.assertAlmostEqual(summary.packet_loss_percent, 25.0)

    def test_macos(self):
        summary = parse_ping_summary(PING_MACOS_OUTPUT, 'darwin')
        self.assertAlmostEqual(summary.latency_ms, 22.25)
        self.assertEqual(summary.packet_loss_percent, 0.0)

    def test_windows(self):
        summary = parse_ping_summary(PING_WINDOWS_OUTPUT, 'Windows')
        self.assertEqual(summary.latency_ms, 14.0)
        self.assertEqual(summary.packet_loss_percent, 0.0)

    def test_wrong_platform_format_is_unparsed(self):
        self.assertIs(parse_ping_summary(PING_WINDOWS_OUTPUT, 'linux'), PING_UNPARSED)

    def test_total_loss_without_rtt(self):
        text = "4 packets transmitted, 0 received, 100% packet loss, time 3053ms\n"
        summary = parse_ping_summary(text, 'linux')
        self.assertTrue(summary.parsed)
        self.assertIsNone(summary.latency_ms)
        self.assertEqual(summary.packet_loss_percent, 100.0)

    def test_garbage(self):
        for text in GARBAGE_INPUTS:
            self.assertFalse(parse_ping_summary(text, 'linux').parsed)
            self.assertFalse(parse_ping_summary(text, 'windows').parsed)


if __name__ == '__main__':
    unittest.main()
