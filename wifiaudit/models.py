"""
WiFiAudit Data Models
Records stored in the scan database and values exchanged during a capture
"""

import re
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Dict, List, Optional, Tuple

NOT_ASSOCIATED = '(not associated)'
POWER_UNKNOWN = float('-inf')

_POWER_RE = re.compile(r'^\s*([+-]?\d+)')


def power_value(power: Optional[str]) -> float:
    """Parse a power reading such as '-40' into a signed integer

    Non-numeric or missing readings sort below every real value.
    """
    if power is None:
        return POWER_UNKNOWN
    match = _POWER_RE.match(str(power))
    if not match:
        return POWER_UNKNOWN
    return int(match.group(1))


def canonical_mac(mac: Optional[str]) -> str:
    """Canonical MAC form used as a record key: trimmed, upper-case, ':' separated"""
    return (mac or '').strip().upper().replace('-', ':')


def _from_dict(cls, data: Dict):
    values = {}
    for f in fields(cls):
        value = data.get(f.name, '')
        values[f.name] = '' if value is None else str(value)
    return cls(**values)


@dataclass
class NetworkRecord:
    """Access point as reported by airodump-ng (column order preserved)"""
    bssid: str
    first_seen: str = ''
    last_seen: str = ''
    channel: str = ''
    speed: str = ''
    privacy: str = ''
    cipher: str = ''
    authentication: str = ''
    power: str = ''
    beacons: str = ''
    iv: str = ''
    lan_ip: str = ''
    id_length: str = ''
    essid: str = ''
    key: str = ''

    @classmethod
    def from_dict(cls, data: Dict) -> 'NetworkRecord':
        return _from_dict(cls, data)

    def to_dict(self) -> Dict:
        return asdict(self)

    @property
    def is_wpa(self) -> bool:
        return 'WPA' in (self.privacy or '')


@dataclass
class ClientRecord:
    """Station as reported by airodump-ng"""
    station_mac: str
    first_seen: str = ''
    last_seen: str = ''
    power: str = ''
    packets: str = ''
    bssid: str = NOT_ASSOCIATED
    probed_essids: str = ''

    @classmethod
    def from_dict(cls, data: Dict) -> 'ClientRecord':
        return _from_dict(cls, data)

    def to_dict(self) -> Dict:
        return asdict(self)

    @property
    def is_associated(self) -> bool:
        return bool(self.bssid) and self.bssid != NOT_ASSOCIATED


@dataclass(frozen=True)
class ScanEvent:
    """One completed scan. Never modified once created."""
    timestamp: str
    duration: int
    networks: Tuple[NetworkRecord, ...] = ()
    clients: Tuple[ClientRecord, ...] = ()

    def __post_init__(self):
        # Freeze the record sequences as well
        object.__setattr__(self, 'networks', tuple(self.networks))
        object.__setattr__(self, 'clients', tuple(self.clients))

    @classmethod
    def from_dict(cls, data: Dict) -> 'ScanEvent':
        return cls(
            timestamp=str(data.get('timestamp', '')),
            duration=int(data.get('duration', 0) or 0),
            networks=[NetworkRecord.from_dict(n) for n in data.get('networks', [])],
            clients=[ClientRecord.from_dict(c) for c in data.get('clients', [])],
        )

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp,
            'duration': self.duration,
            'networks': [n.to_dict() for n in self.networks],
            'clients': [c.to_dict() for c in self.clients],
        }


@dataclass
class Database:
    """Scan history plus the latest record per BSSID / station MAC"""
    scans: List[ScanEvent] = field(default_factory=list)
    unique_networks: Dict[str, NetworkRecord] = field(default_factory=dict)
    unique_clients: Dict[str, ClientRecord] = field(default_factory=dict)


@dataclass
class HandshakeCaptureTarget:
    """Network to capture a handshake for, with tunables"""
    bssid: str
    channel: str
    essid: str
    duration: int = 60
    deauth_count: int = 5
    deauth_interval: float = 10

    @classmethod
    def from_network(cls, network: NetworkRecord, **overrides) -> 'HandshakeCaptureTarget':
        return cls(bssid=network.bssid, channel=network.channel, essid=network.essid, **overrides)


class VerificationResult(Enum):
    PRESENT = 'present'
    ABSENT = 'absent'
    INCONCLUSIVE = 'inconclusive'

    @property
    def is_present(self) -> bool:
        return self is VerificationResult.PRESENT


class CaptureState(Enum):
    IDLE = 'idle'
    MONITOR_MODE = 'monitor_mode'
    CAPTURING = 'capturing'
    AWAITING_HANDSHAKE = 'awaiting_handshake'
    DEAUTHING = 'deauthing'
    VERIFYING = 'verifying'
    DONE_SUCCESS = 'done_success'
    DONE_TIMEOUT = 'done_timeout'
    RESTORING_MODE = 'restoring_mode'
    TERMINAL = 'terminal'


@dataclass
class CaptureResult:
    """Outcome of one handshake capture attempt"""
    artifact_path: Optional[str]
    success: bool
    attempts: int = 0
    elapsed: float = 0.0
    restore_warning: Optional[str] = None
    states: List[CaptureState] = field(default_factory=list)
