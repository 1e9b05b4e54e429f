"""
NetGest Telemetry Configuration
"""

import os

# Server Configuration
SERVER_HOST = os.getenv('SERVER_HOST', '0.0.0.0')
SERVER_PORT = int(os.getenv('SERVER_PORT', 5000))
DEBUG_MODE = os.getenv('DEBUG', 'False').lower() == 'true'

# Security Configuration
SESSION_SECRET = os.getenv('SESSION_SECRET', 'dev-secret-key-change-in-production')

# Capture Tool Configuration
TSHARK_PATH = os.getenv('TSHARK_PATH', 'tshark')
CAPTURE_DURATION = int(os.getenv('CAPTURE_DURATION', 5))  # seconds
CAPTURE_PACKET_COUNT = int(os.getenv('CAPTURE_PACKET_COUNT', 100))
CAPTURE_TIMEOUT_MARGIN = int(os.getenv('CAPTURE_TIMEOUT_MARGIN', 5))  # seconds on top of capture duration
AVAILABILITY_TIMEOUT = int(os.getenv('AVAILABILITY_TIMEOUT', 2))  # seconds
WIDENED_CAPTURE_FILTER = 'tcp or udp'

# Connectivity Probe Configuration
PING_PATH = os.getenv('PING_PATH', 'ping')
PING_COUNT = int(os.getenv('PING_COUNT', 4))
PING_TARGET = os.getenv('PING_TARGET', '')  # empty disables probing during metric sampling
PING_TIMEOUT = int(os.getenv('PING_TIMEOUT', 10))  # seconds
DEFAULT_PING_HOST = os.getenv('DEFAULT_PING_HOST', '8.8.8.8')

# Monitoring Configuration
DEFAULT_POLL_INTERVAL_MS = int(os.getenv('DEFAULT_POLL_INTERVAL_MS', 5000))
MIN_POLL_INTERVAL_MS = int(os.getenv('MIN_POLL_INTERVAL_MS', 1000))
MAX_CONSECUTIVE_FAILURES = int(os.getenv('MAX_CONSECUTIVE_FAILURES', 3))
CACHED_SAMPLE_MAX_AGE = int(os.getenv('CACHED_SAMPLE_MAX_AGE', 30))  # seconds

# Metric Derivation Constants
# Empirical policy values, not measured physics.
DOWNLOAD_RATIO = float(os.getenv('DOWNLOAD_RATIO', 0.7))
UPLOAD_RATIO = float(os.getenv('UPLOAD_RATIO', 0.3))
BASE_LATENCY_MS = float(os.getenv('BASE_LATENCY_MS', 20))
LATENCY_SCALE_MS = float(os.getenv('LATENCY_SCALE_MS', 80))
LATENCY_JITTER_MS = float(os.getenv('LATENCY_JITTER_MS', 5))
BASE_PACKET_LOSS = float(os.getenv('BASE_PACKET_LOSS', 0.1))
HIGH_PACKET_RATE = float(os.getenv('HIGH_PACKET_RATE', 1000))  # packets/s
HIGH_PACKET_RATE_LOSS = float(os.getenv('HIGH_PACKET_RATE_LOSS', 0.5))
HIGH_THROUGHPUT_MBPS = float(os.getenv('HIGH_THROUGHPUT_MBPS', 50))
HIGH_THROUGHPUT_LOSS = float(os.getenv('HIGH_THROUGHPUT_LOSS', 0.3))
PACKET_LOSS_JITTER = float(os.getenv('PACKET_LOSS_JITTER', 0.2))
ESTIMATED_FRAME_BYTES = 1500

# Fallback Configuration
_fallback_seed = os.getenv('FALLBACK_SEED')
FALLBACK_SEED = int(_fallback_seed) if _fallback_seed else None

# Logging Configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# Application Settings
APP_NAME = 'NetGest Telemetry'
APP_VERSION = '1.0.0'
