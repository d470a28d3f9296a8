"""Shared fixtures for WiFiAudit tests."""

import copy

import pytest

from wifiaudit.config import DEFAULT_CONFIG
from wifiaudit.database import ScanDatabase
from wifiaudit.mock_tools import MockProcessRunner


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def config(tmp_path):
    """Default configuration pointing every path into tmp_path."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg['wifi']['interface'] = 'wlan0'
    cfg['wifi']['use_sudo'] = False
    cfg['paths'] = {
        'database': str(tmp_path / 'data' / 'wifi-scan-db.json'),
        'captures_dir': str(tmp_path / 'captures'),
        'scan_dir': str(tmp_path / 'scans'),
        'log_dir': str(tmp_path / 'logs'),
    }
    cfg['capture']['startup_grace'] = 0.5
    return cfg


@pytest.fixture
def db(config):
    return ScanDatabase(config['paths']['database'])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def runner():
    return MockProcessRunner(handshake_after=0)
