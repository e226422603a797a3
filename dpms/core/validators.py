"""
Format checks for Indian GSTIN, mobile numbers and PIN codes
"""
import re

from django.core.validators import RegexValidator

GST_PATTERN = r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$'
PHONE_PATTERN = r'^[6-9]\d{9}$'
PINCODE_PATTERN = r'^\d{6}$'

GST_RE = re.compile(GST_PATTERN)
PHONE_RE = re.compile(PHONE_PATTERN)
PINCODE_RE = re.compile(PINCODE_PATTERN)

gst_validator = RegexValidator(
    GST_PATTERN,
    'Invalid GST format. Must be a valid 15-character GSTIN (e.g. 24AABCU9603R1ZA).'
)
phone_validator = RegexValidator(
    PHONE_PATTERN,
    'Invalid number. Must be a valid 10-digit mobile number.'
)
pincode_validator = RegexValidator(PINCODE_PATTERN, 'Pincode must be 6 digits.')


def is_valid_gst(value):
    return bool(value) and bool(GST_RE.match(value.strip().upper()))
