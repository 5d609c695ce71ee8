"""STIG Audit: automated STIG compliance checking."""

__version__ = "1.0.0"
