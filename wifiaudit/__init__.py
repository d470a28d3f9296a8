"""
WiFiAudit Core Module
Scan database and WPA/WPA2 handshake capture built on the aircrack-ng suite
"""

from .database import ScanDatabase, parse_capture_csv
from .handshake_capture import HandshakeCapture
from .interface_manager import InterfaceModeController
from .models import (
    CaptureResult, CaptureState, ClientRecord, Database, HandshakeCaptureTarget,
    NetworkRecord, ScanEvent, VerificationResult
)
from .verifier import HandshakeVerifier
from .wifi_scanner import WiFiScanner

__version__ = '1.0.0'

__all__ = [
    'ScanDatabase',
    'parse_capture_csv',
    'HandshakeCapture',
    'InterfaceModeController',
    'HandshakeVerifier',
    'WiFiScanner',
    'CaptureResult',
    'CaptureState',
    'ClientRecord',
    'Database',
    'HandshakeCaptureTarget',
    'NetworkRecord',
    'ScanEvent',
    'VerificationResult'
]
