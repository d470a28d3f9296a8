"""
WiFiAudit Process Runner
Launches the external aircrack-ng suite / iproute2 tools
"""

import os
import signal
import subprocess
import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import SubprocessLaunchError

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Exit status and combined stdout/stderr of a finished command"""
    command: List[str]
    returncode: Optional[int]
    output: str = ''
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class ProcessRunner:
    """Runs commands, optionally through sudo"""

    def __init__(self, use_sudo: bool = True):
        self.use_sudo = use_sudo

    def _needs_sudo(self) -> bool:
        if not self.use_sudo or os.name == 'nt':
            return False
        return os.geteuid() != 0

    def build_command(self, command: List[str]) -> List[str]:
        """Prefix a command with sudo when required"""
        if self._needs_sudo():
            return ['sudo'] + list(command)
        return list(command)

    def run(self, command: List[str], timeout: Optional[float] = None) -> ProcessResult:
        """Run a command to completion

        Raises SubprocessLaunchError if the command cannot be started.
        A timeout kills the command and is reported in the result.
        """
        cmd = self.build_command(command)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            completed = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                       text=True, timeout=timeout)
        except subprocess.TimeoutExpired as e:
            output = e.output or ''
            if isinstance(output, bytes):
                output = output.decode(errors='ignore')
            logger.warning(f"{command[0]} timed out after {timeout}s")
            return ProcessResult(command=cmd, returncode=None, output=output, timed_out=True)
        except OSError as e:
            raise SubprocessLaunchError(cmd, str(e)) from e

        return ProcessResult(command=cmd, returncode=completed.returncode, output=completed.stdout or '')

    def spawn(self, command: List[str], capture_output: bool = False) -> subprocess.Popen:
        """Start a command in the background

        Long-running tools (airodump-ng) are started with output discarded
        so a full pipe can never block them.
        """
        cmd = self.build_command(command)
        logger.debug(f"Spawning: {' '.join(cmd)}")

        if capture_output:
            stdout, stderr = subprocess.PIPE, subprocess.STDOUT
        else:
            stdout, stderr = subprocess.DEVNULL, subprocess.DEVNULL

        try:
            return subprocess.Popen(cmd, stdout=stdout, stderr=stderr, text=capture_output)
        except OSError as e:
            raise SubprocessLaunchError(cmd, str(e)) from e

    def stop(self, process: subprocess.Popen, grace: float = 1.0) -> Optional[int]:
        """Ask a process to exit with SIGINT, force-kill it after the grace period"""
        if process.poll() is not None:
            return process.returncode

        try:
            process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            return process.poll()

        try:
            return process.wait(timeout=grace)
        except subprocess.TimeoutExpired:
            logger.debug(f"Process {process.pid} ignored SIGINT, killing")
            self.kill(process)
            try:
                return process.wait(timeout=grace)
            except subprocess.TimeoutExpired:
                logger.warning(f"Process {process.pid} did not exit after SIGKILL")
                return None

    def kill(self, process: subprocess.Popen):
        """Force-kill a process (and the tool behind sudo, which cannot relay SIGKILL)"""
        if process.poll() is not None:
            return

        if self._needs_sudo():
            try:
                subprocess.run(['sudo', 'pkill', '-KILL', '-P', str(process.pid)],
                               stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, timeout=5)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.debug(f"pkill for children of {process.pid} failed: {e}")

        try:
            process.kill()
        except ProcessLookupError:
            pass
