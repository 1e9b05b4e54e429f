"""
Input Validation Module for NetGest Telemetry
Validates HTTP request data before it reaches the capture pipeline
"""

import ipaddress
import re

from flask import request
from marshmallow import EXCLUDE, Schema, fields, validate, ValidationError as MarshmallowValidationError, pre_load

import config
from models import TrafficType


class ValidationError(Exception):
    """Custom validation error"""
    pass


# Device paths such as \Device\NPF_{GUID} are legitimate; control characters and quotes are not
INTERFACE_PATTERN = re.compile(r'^[^\x00-\x1f\x7f"\'`;]+$')
# Characters used by capture filter (BPF) expressions
FILTER_PATTERN = re.compile(r'^[A-Za-z0-9 ()!<>=&|.:/\-\[\]]+$')
HOSTNAME_PATTERN = re.compile(
    r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$'
)


def sanitize_string(text, max_length=255):
    """Strip control characters and surrounding whitespace"""
    if not text:
        return text
    text = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', str(text))
    if len(text) > max_length:
        text = text[:max_length]
    return text.strip()


def validate_interface_id(value):
    if not value or not INTERFACE_PATTERN.match(value):
        raise MarshmallowValidationError("Invalid interface identifier")


def validate_filter_expression(value):
    if value and not FILTER_PATTERN.match(value):
        raise MarshmallowValidationError("Capture filter contains unsupported characters")


def validate_hostname(hostname):
    """Validate a hostname or IP address for connectivity probes"""
    if not hostname:
        raise ValidationError("Hostname is required")

    hostname = sanitize_string(hostname, 253)

    try:
        ipaddress.ip_address(hostname)
        return hostname
    except ValueError:
        pass

    if not HOSTNAME_PATTERN.match(hostname):
        raise ValidationError("Invalid hostname format")

    return hostname


class TrafficRequestSchema(Schema):
    """Schema for traffic capture requests"""

    class Meta:
        unknown = EXCLUDE

    interface = fields.Str(required=True, validate=[validate.Length(min=1, max=255), validate_interface_id])
    traffic_type = fields.Str(
        required=True,
        data_key='trafficType',
        validate=validate.OneOf([traffic_type.value for traffic_type in TrafficType]),
    )
    filter = fields.Str(required=False, allow_none=True,
                        validate=[validate.Length(max=500), validate_filter_expression])
    packet_count = fields.Int(required=False, allow_none=True, data_key='packetCount',
                              validate=validate.Range(min=1, max=10000))

    @pre_load
    def normalize_data(self, data, **kwargs):
        """Accept the legacy mediaType key and sanitize free-text fields"""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if 'trafficType' not in data and 'mediaType' in data:
            data['trafficType'] = data.pop('mediaType')
        if isinstance(data.get('trafficType'), str):
            data['trafficType'] = data['trafficType'].strip().lower()
        if isinstance(data.get('interface'), str):
            data['interface'] = sanitize_string(data['interface'])
        if isinstance(data.get('filter'), str):
            data['filter'] = sanitize_string(data['filter'], 500) or None
        return data


class MonitoringRequestSchema(Schema):
    """Schema for monitoring session start/stop requests"""

    class Meta:
        unknown = EXCLUDE

    interface = fields.Str(required=True, validate=[validate.Length(min=1, max=255), validate_interface_id])
    action = fields.Str(required=True, validate=validate.OneOf(['start', 'stop']))
    interval_ms = fields.Int(
        required=False,
        data_key='intervalMs',
        load_default=config.DEFAULT_POLL_INTERVAL_MS,
        validate=validate.Range(min=config.MIN_POLL_INTERVAL_MS, max=3600000),
    )

    @pre_load
    def sanitize_data(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get('interface'), str):
            data = dict(data)
            data['interface'] = sanitize_string(data['interface'])
        return data


def validate_request_data(schema_class, data=None):
    """Validate request data using marshmallow schema"""
    if data is None:
        if request.is_json:
            data = request.get_json(silent=True) or {}
        else:
            data = request.form.to_dict()

    schema = schema_class()
    try:
        validated_data = schema.load(data)
        return validated_data, None
    except MarshmallowValidationError as e:
        return None, e.messages


def validate_interface_param(value):
    """Validate an interface query parameter; returns (interface, error)"""
    value = sanitize_string(value)
    if not value:
        return None, "Interface parameter is required"
    if len(value) > 255 or not INTERFACE_PATTERN.match(value):
        return None, "Invalid interface identifier"
    return value, None
