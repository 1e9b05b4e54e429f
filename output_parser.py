"""
Parsers for capture and probe tool output.

Tool output formats are undocumented and change between versions, so every
parser here is total: any input, including None, binary garbage or truncated
output, yields a well-formed and possibly empty result. Callers treat an empty
result as "no data" and fall back; it is never an error.
"""

import logging
import re

from models import InterfaceDescriptor, IntervalStat, PingSummary, PING_UNPARSED

logger = logging.getLogger(__name__)

# "1. \Device\NPF_{GUID} (Ethernet)"
INTERFACE_LINE_PATTERN = re.compile(r'^\s*(\d+)\.\s+(.+?)\s+\((.+)\)\s*$')
FRAME_LENGTH_PATTERN = re.compile(r'^\d{1,9}$', re.ASCII)
NUMBER_PATTERN = re.compile(r'^\d{1,15}$', re.ASCII)
INTERVAL_LABEL_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(?:<>|-)\s*(\d+(?:\.\d+)?|Dur)\s*$', re.ASCII)
PACKETS_CAPTURED_PATTERN = re.compile(r'(\d+) packets? captured', re.ASCII)

IO_STATISTICS_MARKER = 'IO Statistics'
IO_SECTION_END_MARKER = '==='

UNIX_LOSS_PATTERN = re.compile(r'(\d+(?:\.\d+)?)% packet loss', re.ASCII)
UNIX_RTT_PATTERN = re.compile(
    r'(?:rtt|round-trip)\s+min/avg/max/(?:mdev|stddev)\s*=\s*[\d.]+/(\d+(?:\.\d+)?)/', re.ASCII
)
WINDOWS_LOSS_PATTERN = re.compile(r'\((\d+(?:\.\d+)?)% loss\)', re.ASCII)
WINDOWS_AVERAGE_PATTERN = re.compile(r'Average\s*=\s*(\d+(?:\.\d+)?)\s*ms', re.ASCII)


def _lines(text):
    if text is None:
        return []
    if isinstance(text, bytes):
        text = text.decode('utf-8', errors='replace')
    return str(text).splitlines()


def parse_interface_list(text):
    """Parse ``tshark -D`` output into interface descriptors"""
    interfaces = []
    for line in _lines(text):
        match = INTERFACE_LINE_PATTERN.match(line)
        if not match:
            continue
        interfaces.append(InterfaceDescriptor(
            index=int(match.group(1)),
            system_id=match.group(2).strip(),
            display_name=match.group(3).strip(),
        ))

    logger.debug(f"Parsed {len(interfaces)} interfaces")
    return interfaces


def parse_frame_lengths(text):
    """Parse ``-T fields -e frame.len`` output, one decoded packet length per line"""
    lengths = []
    for line in _lines(text):
        value = line.strip()
        if FRAME_LENGTH_PATTERN.match(value):
            lengths.append(int(value))
    return lengths


def summarize_frame_lengths(lengths):
    """Return (packet_count, byte_count) for a list of frame lengths"""
    return len(lengths), sum(lengths)


def parse_packets_captured(text):
    """Extract the "N packets captured" summary count, 0 when absent"""
    if text is None:
        return 0
    if isinstance(text, bytes):
        text = text.decode('utf-8', errors='replace')
    match = PACKETS_CAPTURED_PATTERN.search(str(text))
    return int(match.group(1)) if match else 0


def _interval_duration(label, capture_duration):
    match = INTERVAL_LABEL_PATTERN.match(label)
    if not match:
        return 1.0
    start = float(match.group(1))
    end = float(capture_duration) if match.group(2) == 'Dur' else float(match.group(2))
    return end - start


def _table_cells(line):
    cells = [cell.strip() for cell in line.split('|')]
    while cells and not cells[0]:
        cells.pop(0)
    while cells and not cells[-1]:
        cells.pop()
    return cells


def parse_io_statistics_table(text, capture_duration=5):
    """
    Parse the ``-z io,stat,N`` block into interval statistics.

    Only rows between the IO Statistics start marker, the
    ``Interval | Frames | Bytes`` header and the closing ``===`` line are
    considered. Rows with non-numeric frame or byte counts are skipped.
    """
    stats = []
    in_section = False
    in_table = False
    skipped = 0

    for line in _lines(text):
        if not in_section:
            if IO_STATISTICS_MARKER in line:
                in_section = True
            continue

        if not in_table:
            if 'Interval' in line and 'Frames' in line and 'Bytes' in line:
                in_table = True
            continue

        if line.strip().startswith(IO_SECTION_END_MARKER):
            break

        if '|' not in line or '---' in line:
            continue

        cells = _table_cells(line)
        if len(cells) < 3:
            continue

        label, frames, byte_count = cells[0], cells[1], cells[2]
        if not NUMBER_PATTERN.match(frames) or not NUMBER_PATTERN.match(byte_count):
            skipped += 1
            continue

        stats.append(IntervalStat(
            interval_label=label,
            frame_count=int(frames),
            byte_count=int(byte_count),
            duration_seconds=_interval_duration(label, capture_duration),
        ))

    if skipped:
        logger.debug(f"Skipped {skipped} malformed IO statistics rows")
    logger.debug(f"Parsed {len(stats)} IO statistics intervals")
    return stats


def parse_ping_summary(text, platform_name):
    """
    Parse ping output for average latency and packet loss.

    ``platform_name`` selects the Windows format for ``'windows'`` and the
    Unix (Linux/macOS) format otherwise. Returns ``PING_UNPARSED`` when
    neither figure could be found.
    """
    if text is None:
        return PING_UNPARSED
    if isinstance(text, bytes):
        text = text.decode('utf-8', errors='replace')
    text = str(text)

    if str(platform_name).lower() == 'windows':
        loss_match = WINDOWS_LOSS_PATTERN.search(text)
        latency_match = WINDOWS_AVERAGE_PATTERN.search(text)
    else:
        loss_match = UNIX_LOSS_PATTERN.search(text)
        latency_match = UNIX_RTT_PATTERN.search(text)

    if not loss_match and not latency_match:
        return PING_UNPARSED

    packet_loss = float(loss_match.group(1)) if loss_match else None
    if packet_loss is not None:
        packet_loss = min(100.0, max(0.0, packet_loss))

    return PingSummary(
        latency_ms=float(latency_match.group(1)) if latency_match else None,
        packet_loss_percent=packet_loss,
    )
