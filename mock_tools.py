"""
Canned tool output and a fake command executor for tests
"""

from command_executor import ExecError, ExecErrorKind, RawCommandResult

TSHARK_VERSION_OUTPUT = "TShark (Wireshark) 4.2.2 (Git v4.2.2 packaged as 4.2.2-1)\n"

INTERFACE_LIST_OUTPUT = (
    "1. \\Device\\NPF_{E8BF1646-750F-4476-9B15-3007F1F6711F} (Ethernet)\n"
    "2. \\Device\\NPF_Loopback (Loopback)\n"
    "3. \\Device\\NPF_{0A1B2C3D-0000-1111-2222-333344445555} (Wi-Fi)\n"
)

IO_STAT_OUTPUT = """Capturing on 'Ethernet'
40 packets captured

===================================================================
| IO Statistics                                                   |
|                                                                 |
| Duration: 5.0 secs                                              |
| Interval: 1 secs                                                |
|                                                                 |
| Col 1: Frames and bytes                                         |
|-----------------------------------------------------------------|
|              |1               |
| Interval     | Frames | Bytes |
|-------------------------------|
| 0 <> 1       |     10 |  5000 |
| 1 <> 2       |     12 | 62500 |
| 2 <> 3       |    abc |   xyz |
| 3 <> Dur     |   2000 | 1250000 |
===================================================================
"""

LEGACY_IO_STAT_OUTPUT = """===IO Statistics===
Interval | Frames | Bytes
0.000-1.000 | 4 | 1000
1.000-2.000 | 8 | 125000
=====================
"""

PING_LINUX_OUTPUT = """PING 8.8.8.8 (8.8.8.8) 56(84) bytes of data.
64 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=11.2 ms
64 bytes from 8.8.8.8: icmp_seq=2 ttl=117 time=12.9 ms

--- 8.8.8.8 ping statistics ---
4 packets transmitted, 3 received, 25% packet loss, time 3004ms
rtt min/avg/max/mdev = 11.214/12.345/13.902/0.981 ms
"""

PING_MACOS_OUTPUT = """--- example.com ping statistics ---
4 packets transmitted, 4 packets received, 0.0% packet loss
round-trip min/avg/max/stddev = 20.101/22.250/25.002/1.812 ms
"""

PING_WINDOWS_OUTPUT = """Pinging 8.8.8.8 with 32 bytes of data:
Reply from 8.8.8.8: bytes=32 time=14ms TTL=117

Ping statistics for 8.8.8.8:
    Packets: Sent = 4, Received = 4, Lost = 0 (0% loss),
Approximate round trip times in milli-seconds:
    Minimum = 13ms, Maximum = 16ms, Average = 14ms
"""


def ok(stdout='', stderr=''):
    return RawCommandResult(stdout=stdout, stderr=stderr)


def failure(kind, stdout='', stderr='', message='failed'):
    return RawCommandResult(stdout=stdout, stderr=stderr, error=ExecError(kind, message, stderr))


NOT_FOUND = failure(ExecErrorKind.NOT_FOUND, message='No such file or directory')
TIMED_OUT = failure(ExecErrorKind.TIMEOUT, message='Command timed out after 10s')


class FakeExecutor:
    """
    Returns canned results by matching on command arguments.

    ``routes`` is a list of (predicate, result) pairs; a result may be a list,
    consumed one item per matching call (the last item repeats).
    """

    def __init__(self, routes=None, default=None):
        self.routes = list(routes or [])
        self.default = default if default is not None else ok()
        self.calls = []

    def add(self, predicate, result):
        self.routes.append((predicate, result))
        return self

    def run(self, command, timeout):
        self.calls.append((list(command), timeout))
        for predicate, result in self.routes:
            if predicate(command):
                if isinstance(result, list):
                    return result.pop(0) if len(result) > 1 else result[0]
                return result
        return self.default

    def commands_with(self, argument):
        return [command for command, _ in self.calls if argument in command]


def is_version_check(command):
    return '-v' in command


def is_interface_list(command):
    return '-D' in command


def is_io_stat(command):
    return any(str(part).startswith('io,stat') for part in command)


def has_filter(capture_filter):
    def predicate(command):
        return '-f' in command and command[command.index('-f') + 1] == capture_filter
    return predicate


def working_tshark(io_stat_output=IO_STAT_OUTPUT):
    """Executor emulating an installed tshark with the canned interface list"""
    return FakeExecutor([
        (is_version_check, ok(TSHARK_VERSION_OUTPUT)),
        (is_interface_list, ok(INTERFACE_LIST_OUTPUT)),
        (is_io_stat, ok(stdout=io_stat_output)),
    ])
