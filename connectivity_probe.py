"""
Ping-based connectivity probe.
"""

import logging
import platform

import config
from command_executor import CommandExecutor, ExecErrorKind
from errors import CaptureTimeout, ToolNotAvailable
from output_parser import parse_ping_summary

logger = logging.getLogger(__name__)


class ConnectivityProbe:
    """Runs the platform ping command and parses its summary"""

    def __init__(self, executor=None, ping_path=None, count=None, timeout=None, platform_name=None):
        self.executor = executor or CommandExecutor()
        self.ping_path = ping_path or config.PING_PATH
        self.count = config.PING_COUNT if count is None else count
        self.timeout = config.PING_TIMEOUT if timeout is None else timeout
        self.platform_name = (platform_name or platform.system()).lower()

    def build_command(self, host):
        if self.platform_name == 'windows':
            return [self.ping_path, '-n', str(self.count), host]
        return [self.ping_path, '-c', str(self.count), host]

    def probe(self, host):
        """
        Ping ``host`` and return its PingSummary.

        A non-zero exit still gets parsed, since ping exits non-zero on total
        loss while printing a valid summary. Raises ToolNotAvailable or
        CaptureTimeout when no output could be obtained.
        """
        result = self.executor.run(self.build_command(host), self.timeout)
        if result.error is not None:
            if result.error.kind == ExecErrorKind.NOT_FOUND:
                raise ToolNotAvailable(result.error.message)
            if result.error.kind == ExecErrorKind.TIMEOUT:
                raise CaptureTimeout(result.error.message)
            logger.debug(f"Ping exited with an error, parsing output anyway: {result.error.message}")

        summary = parse_ping_summary(result.output, self.platform_name)
        if not summary.parsed:
            logger.warning(f"Ping output for {host} did not match the {self.platform_name} format")
        return summary
