"""
WiFiAudit Deauth Injector
Sends bounded aireplay-ng deauthentication bursts. Failures are logged,
never raised: a missed burst only means waiting for the next one.
"""

import subprocess
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import SubprocessLaunchError, TransientInjectionError
from .models import HandshakeCaptureTarget

logger = logging.getLogger(__name__)


@dataclass
class DeauthResult:
    sent: bool
    returncode: Optional[int] = None
    output: str = ''


class DeauthInjector:
    """Fires deauth bursts at an access point or one of its clients"""

    def __init__(self, runner, interface: str, timeout: float = 30):
        self.runner = runner
        self.interface = interface
        self.timeout = timeout
        self.process = None

    def burst(self, target: HandshakeCaptureTarget, count: Optional[int] = None,
              client_mac: Optional[str] = None) -> DeauthResult:
        """Send one burst and wait for aireplay-ng to finish"""
        count = count or target.deauth_count

        command = ['aireplay-ng', '--deauth', str(count), '-a', target.bssid]
        if client_mac:
            command += ['-c', client_mac]
            logger.info(f"💥 Sending {count} deauth packets to client {client_mac}...")
        else:
            logger.info(f"💥 Sending {count} deauth packets (broadcast)...")
        command.append(self.interface)

        try:
            output, returncode = self._run(command)
        except TransientInjectionError as e:
            logger.warning(f"⚠️  Deauth error: {e}")
            return DeauthResult(sent=False, returncode=e.returncode)

        if returncode == 0:
            logger.info("✓ Deauth packets sent")
            return DeauthResult(sent=True, returncode=0, output=output)

        logger.warning(f"⚠️  Deauth process exited with code {returncode}: {output.strip()[:200]}")
        return DeauthResult(sent=False, returncode=returncode, output=output)

    def _run(self, command):
        try:
            self.process = self.runner.spawn(command, capture_output=True)
        except SubprocessLaunchError as e:
            raise TransientInjectionError(f"could not start aireplay-ng: {e.reason}") from e

        try:
            output, _ = self.process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            self.kill()
            raise TransientInjectionError(f"aireplay-ng took longer than {self.timeout}s") from e

        returncode = self.process.returncode
        self.process = None
        return output or '', returncode

    def kill(self):
        """Force-kill a burst still in flight (teardown)"""
        if self.process is None:
            return
        process = self.process
        self.process = None
        try:
            self.runner.kill(process)
            process.wait(timeout=1)
        except Exception as e:
            logger.debug(f"Error killing deauth process: {e}")
