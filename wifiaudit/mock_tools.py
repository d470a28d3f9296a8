"""
WiFiAudit Mock Tools
Simulates ip/iw/airodump-ng/aireplay-ng/aircrack-ng for debug mode, so the
scan and capture flows run without a monitor-mode adapter
"""

import itertools
import os
import signal
import subprocess
import logging
import random
from typing import Dict, List, Optional

from .errors import SubprocessLaunchError
from .process_runner import ProcessResult

logger = logging.getLogger(__name__)

LAUNCH_FAILURE = 'launch'

# Realistic WiFi networks with varied characteristics
MOCK_NETWORKS = [
    {"essid": "NETGEAR42", "bssid": "AA:BB:CC:DD:EE:01", "channel": 6, "privacy": "WPA2", "power": -45},
    {"essid": "TP-Link_5F3A", "bssid": "AA:BB:CC:DD:EE:02", "channel": 1, "privacy": "WPA2", "power": -60},
    {"essid": "Linksys00234", "bssid": "AA:BB:CC:DD:EE:03", "channel": 11, "privacy": "WPA2 WPA", "power": -70},
    {"essid": "Starbucks WiFi", "bssid": "AA:BB:CC:DD:EE:06", "channel": 6, "privacy": "OPN", "power": -50},
    {"essid": "Office_Corp", "bssid": "AA:BB:CC:DD:EE:08", "channel": 1, "privacy": "WPA2", "power": -68},
    {"essid": "OldRouter", "bssid": "AA:BB:CC:DD:EE:09", "channel": 3, "privacy": "WEP", "power": -77},
    # Hidden network
    {"essid": "", "bssid": "AA:BB:CC:DD:EE:12", "channel": 6, "privacy": "WPA2", "power": -80},
]

MOCK_CLIENTS = [
    {"station_mac": "11:22:33:44:55:01", "bssid": "AA:BB:CC:DD:EE:01", "power": -52, "probes": "NETGEAR42"},
    {"station_mac": "11:22:33:44:55:02", "bssid": "AA:BB:CC:DD:EE:01", "power": -61, "probes": ""},
    {"station_mac": "11:22:33:44:55:03", "bssid": "AA:BB:CC:DD:EE:08", "power": -66, "probes": "Office_Corp,Guest"},
    {"station_mac": "11:22:33:44:55:04", "bssid": "(not associated)", "power": -73, "probes": "HomeNet"},
]

NETWORK_HEADER = ("BSSID, First time seen, Last time seen, channel, Speed, Privacy, Cipher, "
                  "Authentication, Power, # beacons, # IV, LAN IP, ID-length, ESSID, Key")
CLIENT_HEADER = "Station MAC, First time seen, Last time seen, Power, # packets, BSSID, Probed ESSIDs"

HANDSHAKE_OUTPUT = (
    "Reading packets, please wait...\n"
    "   #  BSSID              ESSID                     Encryption\n\n"
    "   1  {bssid}  {essid}  WPA (1 handshake)\n"
)
NO_HANDSHAKE_OUTPUT = (
    "Reading packets, please wait...\n"
    "Packets contained no EAPOL data; unable to process this AP.\n"
)


def build_mock_csv(networks: List[Dict], clients: List[Dict], seen: str = '2025-01-01 12:00:00') -> str:
    """Render records in the airodump-ng CSV layout"""
    lines = ['', NETWORK_HEADER]
    for n in networks:
        essid = n['essid']
        lines.append(
            f"{n['bssid']}, {seen}, {seen}, {n['channel']:>2}, 54, {n['privacy']}, CCMP, PSK, "
            f"{n['power']}, {random.randint(10, 500)}, 0, 0.  0.  0.  0, {len(essid)}, {essid}, "
        )
    lines += ['', CLIENT_HEADER]
    for c in clients:
        lines.append(
            f"{c['station_mac']}, {seen}, {seen}, {c['power']}, {random.randint(1, 200)}, "
            f"{c['bssid']}, {c['probes']}"
        )
    return '\r\n'.join(lines) + '\r\n'


class MockProcess:
    """Stand-in for subprocess.Popen"""

    _pids = itertools.count(40000)

    def __init__(self, args: List[str], returncode: Optional[int] = 0, output: str = '',
                 long_running: bool = False):
        self.args = args
        self.pid = next(self._pids)
        self.output = output
        self.long_running = long_running
        self.returncode = None if long_running else returncode
        self.signals = []

    def poll(self) -> Optional[int]:
        return self.returncode

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        if self.returncode is None:
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.returncode

    def communicate(self, timeout: Optional[float] = None):
        if self.returncode is None:
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.output, None

    def send_signal(self, sig):
        self.signals.append(sig)
        if self.returncode is None and sig == signal.SIGINT:
            self.returncode = 0

    def kill(self):
        self.signals.append(signal.SIGKILL)
        if self.returncode is None:
            self.returncode = -signal.SIGKILL


class MockProcessRunner:
    """ProcessRunner replacement that fakes the external tools

    failures maps a fragment of the command line to either an exit code or
    LAUNCH_FAILURE; the first matching fragment decides the outcome.
    handshake_after is the aircrack-ng call on which a handshake is first
    reported (0 or None: never).
    """

    def __init__(self, handshake_after: Optional[int] = 2, failures: Optional[Dict] = None,
                 networks: Optional[List[Dict]] = None, clients: Optional[List[Dict]] = None,
                 ignore_sigint: bool = False):
        self.handshake_after = handshake_after
        self.failures = dict(failures or {})
        self.networks = MOCK_NETWORKS if networks is None else networks
        self.clients = MOCK_CLIENTS if clients is None else clients
        self.ignore_sigint = ignore_sigint

        self.commands: List[List[str]] = []
        self.processes: List[MockProcess] = []
        self.verify_calls = 0

        logger.info("Mock process runner initialized (DEBUG MODE)")

    def build_command(self, command: List[str]) -> List[str]:
        return list(command)

    def _failure_for(self, command: List[str]):
        line = ' '.join(command)
        for fragment, outcome in self.failures.items():
            if fragment in line:
                return outcome
        return None

    def count(self, fragment: str) -> int:
        """How many recorded commands contain the fragment"""
        return sum(1 for c in self.commands if fragment in ' '.join(c))

    def run(self, command: List[str], timeout: Optional[float] = None) -> ProcessResult:
        self.commands.append(list(command))
        logger.debug(f"[mock] run: {' '.join(command)}")

        failure = self._failure_for(command)
        if failure == LAUNCH_FAILURE:
            raise SubprocessLaunchError(command, "No such file or directory")
        if failure is not None:
            return ProcessResult(command=list(command), returncode=failure, output='mock failure')

        if command[0] == 'aircrack-ng':
            return ProcessResult(command=list(command), returncode=0, output=self._aircrack_output())

        return ProcessResult(command=list(command), returncode=0)

    def _aircrack_output(self) -> str:
        self.verify_calls += 1
        if self.handshake_after and self.verify_calls >= self.handshake_after:
            network = self.networks[0] if self.networks else {'bssid': '00:00:00:00:00:00', 'essid': ''}
            return HANDSHAKE_OUTPUT.format(bssid=network['bssid'], essid=network['essid'])
        return NO_HANDSHAKE_OUTPUT

    def spawn(self, command: List[str], capture_output: bool = False) -> MockProcess:
        self.commands.append(list(command))
        logger.debug(f"[mock] spawn: {' '.join(command)}")

        failure = self._failure_for(command)
        if failure == LAUNCH_FAILURE:
            raise SubprocessLaunchError(command, "No such file or directory")
        if failure is not None:
            process = MockProcess(command, returncode=failure, output='mock failure')
        elif command[0] == 'airodump-ng':
            self._write_airodump_output(command)
            process = MockProcess(command, long_running=True)
        elif command[0] == 'aireplay-ng':
            count = command[command.index('--deauth') + 1] if '--deauth' in command else '0'
            process = MockProcess(command, output=f"Sending {count} directed DeAuth (code 7).\n")
        else:
            process = MockProcess(command)

        self.processes.append(process)
        return process

    def _write_airodump_output(self, command: List[str]):
        prefix = None
        for flag in ('-w', '--write'):
            if flag in command:
                prefix = command[command.index(flag) + 1]
        if not prefix:
            return

        fmt = command[command.index('--output-format') + 1] if '--output-format' in command else 'pcap'
        directory = os.path.dirname(prefix)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if fmt == 'csv':
            with open(prefix + '-01.csv', 'w', encoding='utf-8') as f:
                f.write(build_mock_csv(self.networks, self.clients))
        else:
            with open(prefix + '-01.cap', 'wb'):
                pass

    def stop(self, process: MockProcess, grace: float = 1.0) -> Optional[int]:
        if process.poll() is not None:
            return process.returncode
        if not self.ignore_sigint:
            process.send_signal(signal.SIGINT)
        else:
            process.signals.append(signal.SIGINT)
        if process.poll() is None:
            self.kill(process)
        return process.returncode

    def kill(self, process: MockProcess):
        if process.poll() is None:
            process.kill()
