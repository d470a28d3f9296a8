"""
WiFiAudit Handshake Verifier
Asks aircrack-ng whether a capture file holds a usable 4-way handshake
"""

import os
import re
import logging

from .errors import SubprocessLaunchError
from .models import VerificationResult

logger = logging.getLogger(__name__)

NO_EAPOL_MARKERS = (
    'no EAPOL',
    'Packets contained no EAPOL data',
    'unable to process this AP',
)
_WPA_HANDSHAKE_RE = re.compile(r'WPA \(\d+ handshake')


def classify_output(output: str) -> VerificationResult:
    """Classify aircrack-ng output text

    A "no EAPOL" message always means ABSENT. Otherwise any mention of a
    handshake without an explicit zero count counts as PRESENT, which can
    also match unrelated informational text.
    """
    if any(marker in output for marker in NO_EAPOL_MARKERS):
        return VerificationResult.ABSENT

    has_handshake = ('1 handshake' in output or 'handshake' in output) and '0 handshake' not in output
    has_valid_wpa = bool(_WPA_HANDSHAKE_RE.search(output)) and 'WPA (0 handshake)' not in output

    if has_handshake or has_valid_wpa:
        return VerificationResult.PRESENT
    return VerificationResult.ABSENT


class HandshakeVerifier:
    """Runs aircrack-ng against a capture file"""

    def __init__(self, runner, timeout: float = 30):
        self.runner = runner
        self.timeout = timeout

    def verify(self, capture_path: str) -> VerificationResult:
        """Check a capture file. Never raises."""
        logger.info(f"🔍 Checking for handshake in {os.path.basename(capture_path)}...")

        try:
            result = self.runner.run(['aircrack-ng', capture_path], timeout=self.timeout)
        except SubprocessLaunchError as e:
            logger.warning(f"Could not run aircrack-ng: {e.reason}")
            return VerificationResult.INCONCLUSIVE

        if result.timed_out:
            logger.warning(f"Handshake verification timeout for {capture_path}")
            return VerificationResult.INCONCLUSIVE

        verdict = classify_output(result.output)
        if verdict.is_present:
            logger.info("✓ Valid handshake with EAPOL data detected!")
        else:
            logger.info("❌ No valid handshake found yet")
        return verdict
