"""
Face Attendance - Identity Matching and Attendance Dedup

A modular Python service that matches live face captures against a registry
of enrolled identities and records de-duplicated attendance events.
"""

__version__ = "1.0.0"
__author__ = "Face Attendance Team"
