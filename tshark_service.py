"""
TShark invocation: install check, interface listing and resolution, and the
two capture shapes (frame lengths for a filter, IO statistics for a duration).
"""

import logging
import re
import socket

import psutil

import config
from command_executor import CommandExecutor, ExecErrorKind
from errors import CaptureTimeout, NoInterfacesFound, ToolNotAvailable
from output_parser import parse_interface_list

logger = logging.getLogger(__name__)

WINDOWS_DEVICE_PREFIX = '\\Device\\NPF_'
INTERFACE_NUMBER_PATTERN = re.compile(r'^\d+$')


class TSharkService:
    """Builds and runs tshark command lines through a CommandExecutor"""

    def __init__(self, executor=None, tshark_path=None, availability_timeout=None, timeout_margin=None):
        self.executor = executor or CommandExecutor()
        self.tshark_path = tshark_path or config.TSHARK_PATH
        self.availability_timeout = config.AVAILABILITY_TIMEOUT if availability_timeout is None else availability_timeout
        self.timeout_margin = config.CAPTURE_TIMEOUT_MARGIN if timeout_margin is None else timeout_margin

    def check_installation(self):
        """Check if tshark is installed and responds to -v"""
        result = self.executor.run([self.tshark_path, '-v'], self.availability_timeout)
        if not result.ok:
            logger.warning(f"TShark not available: {result.error.message}")
            return False
        first_line = result.stdout.strip().split('\n')[0] if result.stdout.strip() else ''
        logger.debug(f"TShark version: {first_line}")
        return True

    def list_interfaces(self):
        """
        List capture interfaces with ``tshark -D``.

        Raises ToolNotAvailable or CaptureTimeout when the tool cannot be run;
        an empty list means the tool ran but listed nothing usable.
        """
        result = self.executor.run([self.tshark_path, '-D'], self.availability_timeout)
        if not result.ok:
            if result.error.kind == ExecErrorKind.NOT_FOUND:
                raise ToolNotAvailable(result.error.message)
            if result.error.kind == ExecErrorKind.TIMEOUT:
                raise CaptureTimeout(result.error.message)
            logger.warning(f"Failed to get interfaces: {result.error.message}")
        interfaces = parse_interface_list(result.output)
        logger.info(f"Found interfaces: {', '.join(f'{i.index}: {i.display_name}' for i in interfaces)}")
        return interfaces

    def resolve_interface(self, requested, interfaces):
        """
        Resolve a requested interface to a capture device id.

        Accepts an index number, a Windows device path (used verbatim) or a
        case-insensitive name/description substring. Unknown requests fall
        back to the first listed interface.
        """
        requested = (requested or '').strip()

        if WINDOWS_DEVICE_PREFIX in requested:
            logger.info(f"Using provided interface ID: {requested}")
            return requested

        if not interfaces:
            raise NoInterfacesFound(f"No capture interfaces available for {requested!r}")

        if INTERFACE_NUMBER_PATTERN.match(requested):
            for interface in interfaces:
                if interface.index == int(requested):
                    logger.info(f"Using interface #{requested}: {interface.display_name} ({interface.system_id})")
                    return interface.system_id
            logger.info(f"Interface #{requested} not found, using first interface: {interfaces[0].display_name}")
            return interfaces[0].system_id

        needle = requested.lower()
        for interface in interfaces:
            if needle and (needle == interface.system_id.lower()
                           or needle in interface.display_name.lower()
                           or needle in interface.system_id.lower()):
                logger.info(f"Matched interface {requested!r} to: {interface.display_name} ({interface.system_id})")
                return interface.system_id

        logger.info(f"No matching interface found for {requested!r}, using first interface: {interfaces[0].display_name}")
        return interfaces[0].system_id

    def capture_timeout(self, duration_seconds):
        return duration_seconds + self.timeout_margin

    def capture_frame_lengths(self, interface_id, capture_filter, packet_count, duration_seconds):
        """Capture up to ``packet_count`` packets matching a filter, printing one frame length per line"""
        command = [
            self.tshark_path, '-i', interface_id,
            '-a', f'duration:{duration_seconds}',
            '-c', str(packet_count),
            '-f', capture_filter,
            '-T', 'fields', '-e', 'frame.len',
        ]
        return self.executor.run(command, self.capture_timeout(duration_seconds))

    def capture_io_statistics(self, interface_id, duration_seconds, interval_seconds=1):
        """Capture for a fixed duration and print the IO statistics table"""
        command = [
            self.tshark_path, '-i', interface_id,
            '-a', f'duration:{duration_seconds}',
            '-q', '-z', f'io,stat,{interval_seconds}',
        ]
        return self.executor.run(command, self.capture_timeout(duration_seconds))


def list_system_interfaces():
    """Interfaces from the operating system table, for when tshark lists none"""
    interfaces = []
    try:
        net_if_stats = psutil.net_if_stats()
        net_if_addrs = psutil.net_if_addrs()
        net_io = psutil.net_io_counters(pernic=True)
    except (OSError, RuntimeError) as e:
        logger.warning(f"System interface enumeration failed: {e}")
        return interfaces

    for index, (interface_name, addresses) in enumerate(sorted(net_if_addrs.items()), start=1):
        stats = net_if_stats.get(interface_name)
        counters = net_io.get(interface_name)
        ip_address = None
        mac_address = None
        for addr in addresses:
            if addr.family == socket.AF_INET and ip_address is None:
                ip_address = addr.address
            elif addr.family == psutil.AF_LINK and mac_address is None:
                mac_address = addr.address

        interfaces.append({
            'index': index,
            'id': interface_name,
            'name': interface_name,
            'status': 'up' if stats and stats.isup else 'down',
            'ipAddress': ip_address,
            'macAddress': mac_address,
            'txBytes': counters.bytes_sent if counters else 0,
            'rxBytes': counters.bytes_recv if counters else 0,
            'txPackets': counters.packets_sent if counters else 0,
            'rxPackets': counters.packets_recv if counters else 0,
        })

    return interfaces
