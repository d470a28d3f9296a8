"""Tests for aircrack-ng output classification."""

import pytest

from wifiaudit.errors import SubprocessLaunchError
from wifiaudit.mock_tools import HANDSHAKE_OUTPUT, LAUNCH_FAILURE, NO_HANDSHAKE_OUTPUT, MockProcessRunner
from wifiaudit.models import VerificationResult
from wifiaudit.process_runner import ProcessResult
from wifiaudit.verifier import HandshakeVerifier, classify_output


class TestClassifyOutput:
    """Tests for the text rule."""

    @pytest.mark.parametrize('text', [
        'Packets contained no EAPOL data; unable to process this AP.',
        'no EAPOL',
        'unable to process this AP',
    ])
    def test_no_eapol_markers(self, text):
        assert classify_output(text) is VerificationResult.ABSENT

    def test_no_eapol_beats_handshake_count(self):
        text = 'WPA (1 handshake)\nPackets contained no EAPOL data'
        assert classify_output(text) is VerificationResult.ABSENT

    def test_one_handshake(self):
        text = HANDSHAKE_OUTPUT.format(bssid='AA:BB:CC:DD:EE:01', essid='NETGEAR42')
        assert classify_output(text) is VerificationResult.PRESENT

    def test_zero_handshakes(self):
        assert classify_output('1  AA:BB:CC:DD:EE:01  Home  WPA (0 handshake)') is VerificationResult.ABSENT

    def test_multiple_handshakes(self):
        assert classify_output('WPA (3 handshake)') is VerificationResult.PRESENT

    def test_bare_handshake_word_counts(self):
        # Loose rule: any mention of "handshake" without a zero count matches
        assert classify_output('Looking for handshake...') is VerificationResult.PRESENT

    def test_unrelated_output(self):
        assert classify_output('Reading packets, please wait...') is VerificationResult.ABSENT
        assert classify_output('') is VerificationResult.ABSENT


class TestHandshakeVerifier:
    """Tests for HandshakeVerifier."""

    def test_present(self):
        runner = MockProcessRunner(handshake_after=1)
        result = HandshakeVerifier(runner).verify('/tmp/capture-01.cap')

        assert result is VerificationResult.PRESENT
        assert runner.commands == [['aircrack-ng', '/tmp/capture-01.cap']]

    def test_absent(self):
        runner = MockProcessRunner(handshake_after=0)
        assert HandshakeVerifier(runner).verify('/tmp/capture-01.cap') is VerificationResult.ABSENT

    def test_launch_failure_is_inconclusive(self):
        runner = MockProcessRunner(failures={'aircrack-ng': LAUNCH_FAILURE})
        result = HandshakeVerifier(runner).verify('/tmp/capture-01.cap')

        assert result is VerificationResult.INCONCLUSIVE
        assert not result.is_present

    def test_timeout_is_inconclusive(self):
        class TimeoutRunner:
            def run(self, command, timeout=None):
                return ProcessResult(command=command, returncode=None, output=NO_HANDSHAKE_OUTPUT,
                                     timed_out=True)

        assert HandshakeVerifier(TimeoutRunner(), timeout=1).verify('x.cap') is VerificationResult.INCONCLUSIVE

    def test_never_raises(self):
        class BrokenRunner:
            def run(self, command, timeout=None):
                raise SubprocessLaunchError(command, 'Permission denied')

        assert HandshakeVerifier(BrokenRunner()).verify('x.cap') is VerificationResult.INCONCLUSIVE
