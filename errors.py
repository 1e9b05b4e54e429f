"""
Telemetry error taxonomy.

Every error here is recovered below the HTTP boundary; only MonitoringStopped
is ever reported to the end user, as a monitoring-stopped condition.
"""


class TelemetryError(Exception):
    """Base class for capture and probe failures"""
    pass


class ToolNotAvailable(TelemetryError):
    """Capture or probe binary missing or unreachable"""
    pass


class CaptureTimeout(TelemetryError):
    """External process exceeded its allotted time and was terminated"""
    pass


class NoInterfacesFound(TelemetryError):
    pass


class ParseEmpty(TelemetryError):
    """Tool ran but its output yielded zero structured records"""
    pass


class ParseMalformed(ParseEmpty):
    """Output in an unexpected format; handled like ParseEmpty"""
    pass


class MonitoringStopped(TelemetryError):
    """A monitoring session exceeded its consecutive-failure threshold"""

    def __init__(self, interface_id, failure_count, last_error=None):
        self.interface_id = interface_id
        self.failure_count = failure_count
        self.last_error = last_error
        message = f"Monitoring stopped for {interface_id} after {failure_count} consecutive failures"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)

    def to_dict(self):
        return {
            'error': 'monitoring_stopped',
            'interface': self.interface_id,
            'consecutiveFailures': self.failure_count,
            'message': str(self),
        }
