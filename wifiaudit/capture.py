"""
WiFiAudit Capture Session
Runs airodump-ng locked to one access point, writing a pcap file
"""

import os
import re
import time
import logging
from datetime import datetime
from typing import Optional

from .errors import SubprocessLaunchError
from .models import HandshakeCaptureTarget

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = '-01.cap'


def sanitize_name(name: str) -> str:
    """Reduce a network name to characters safe for a file name"""
    return re.sub(r'[^a-zA-Z0-9_-]', '_', name or '')


def artifact_prefix(captures_dir: str, essid: str, when: Optional[datetime] = None) -> str:
    """Output prefix handed to airodump-ng for a capture"""
    when = when or datetime.now()
    timestamp = when.strftime('%Y-%m-%dT%H-%M-%S-%f')
    return os.path.join(captures_dir, f"handshake-{sanitize_name(essid)}-{timestamp}")


class CaptureSession:
    """One airodump-ng process capturing a single target"""

    def __init__(self, runner, interface: str, captures_dir: str = './captures',
                 startup_grace: float = 2.0, stop_grace: float = 1.0,
                 poll_interval: float = 0.2):
        self.runner = runner
        self.interface = interface
        self.captures_dir = captures_dir
        self.startup_grace = startup_grace
        self.stop_grace = stop_grace
        self.poll_interval = poll_interval

        self.process = None
        self.artifact_path = None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def start(self, target: HandshakeCaptureTarget) -> str:
        """Start capturing and return the path of the capture file

        Returns as soon as airodump-ng has created its output file, or once
        the startup grace period has passed with the process still alive.
        """
        os.makedirs(self.captures_dir, exist_ok=True)
        prefix = artifact_prefix(self.captures_dir, target.essid)
        artifact_path = prefix + ARTIFACT_SUFFIX

        logger.info(f"📡 Starting capture on {target.essid} ({target.bssid})...")
        logger.info(f"   Channel: {target.channel}")
        logger.info(f"   Output: {artifact_path}")

        command = [
            'airodump-ng',
            '--bssid', target.bssid,
            '-c', str(target.channel),
            '-w', prefix,
            '--output-format', 'pcap',
            self.interface
        ]
        self.process = self.runner.spawn(command)
        self.artifact_path = artifact_path

        deadline = time.monotonic() + self.startup_grace
        while True:
            returncode = self.process.poll()
            if returncode is not None:
                self.process = None
                if returncode != 0:
                    raise SubprocessLaunchError(command, f"exited during startup with code {returncode}")
                logger.warning("airodump-ng exited during startup")
                break
            if os.path.exists(artifact_path):
                logger.debug(f"Capture file {os.path.basename(artifact_path)} created")
                break
            if time.monotonic() >= deadline:
                break
            time.sleep(self.poll_interval)

        logger.info(f"✓ Capturing {target.essid} -> {os.path.basename(artifact_path)}")
        return artifact_path

    def stop(self):
        """Stop airodump-ng (SIGINT first, then kill). Never raises."""
        if self.process is None:
            return

        process = self.process
        self.process = None
        try:
            returncode = self.runner.stop(process, grace=self.stop_grace)
            logger.debug(f"Capture process exited with {returncode}")
        except Exception as e:
            logger.warning(f"Could not stop capture process cleanly: {e}")
