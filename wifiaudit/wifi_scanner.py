"""
WiFiAudit WiFi Scanner Module
Timed airodump-ng scans whose CSV output is merged into the scan database
"""

import os
import time
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .config import build_runner
from .database import ScanDatabase, sort_by_power
from .errors import SubprocessLaunchError
from .interface_manager import InterfaceModeController, resolve_interface
from .models import ClientRecord, NetworkRecord, ScanEvent

logger = logging.getLogger(__name__)

# airodump-ng exits with 2 (or is reported as killed by a signal) after SIGINT
ACCEPTED_EXIT_CODES = (None, 0, 2)
SUMMARY_ROWS = 10


class WiFiScanner:
    """Plain scan cycle: monitor mode, airodump-ng CSV, merge, managed mode"""

    def __init__(self, config: Dict, database: Optional[ScanDatabase] = None,
                 runner=None, interface: Optional[str] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """Initialize WiFi scanner"""
        self.config = config
        self.runner = runner or build_runner(config)
        self.interface = interface or resolve_interface(config, self.runner)
        self.db = database or ScanDatabase(config['paths']['database'])
        self.mode_controller = InterfaceModeController(self.runner)
        self.sleep = sleep

        self.scan_dir = config['paths']['scan_dir']
        self.keep_scans = config['scan'].get('keep_scans', 5)
        self.stop_grace = 0.5

        logger.info(f"Using interface: {self.interface}")

    def scan(self, duration: Optional[int] = None) -> ScanEvent:
        """Perform a complete scan cycle

        The adapter is returned to managed mode whatever happens.
        """
        duration = duration or self.config['scan']['default_duration']
        started = time.monotonic()

        try:
            self.mode_controller.enter_monitor_mode(self.interface)

            csv_path = self._run_scan(duration)

            logger.info("📄 Parsing scan results...")
            networks, clients = self._parse_scan_results(csv_path)
            logger.info(f"   Found {len(networks)} networks")
            logger.info(f"   Found {len(clients)} clients")

            event = ScanEvent(
                timestamp=datetime.now(timezone.utc).isoformat(),
                duration=round(time.monotonic() - started),
                networks=networks,
                clients=clients
            )
            self.db.merge(event)

            self.print_summary(networks, clients)
            self._cleanup_old_scans()
            return event

        except Exception as e:
            logger.error(f"❌ Scan failed: {e}")
            raise

        finally:
            try:
                self.mode_controller.enter_managed_mode(self.interface)
            except Exception as e:
                logger.warning(f"⚠️  Failed to restore managed mode: {e}")

    def _run_scan(self, duration: int) -> str:
        """Run airodump-ng for the given duration, return the CSV path"""
        os.makedirs(self.scan_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y-%m-%dT%H-%M-%S-%f')
        output_prefix = os.path.join(self.scan_dir, f"scan-{timestamp}")

        logger.info(f"📡 Starting WiFi scan for {duration} seconds...")
        logger.info(f"   Interface: {self.interface}")
        logger.info(f"   Output: {output_prefix}")

        command = [
            'airodump-ng',
            '--write', output_prefix,
            '--output-format', 'csv',
            '--write-interval', '1',
            self.interface
        ]
        process = self.runner.spawn(command)

        try:
            self.sleep(duration)
        finally:
            returncode = self.runner.stop(process, grace=self.stop_grace)

        # Negative codes mean the process was ended by a signal
        if returncode not in ACCEPTED_EXIT_CODES and returncode > 0:
            raise SubprocessLaunchError(command, f"scan failed with code {returncode}")

        logger.info("✓ Scan completed")
        return output_prefix + '-01.csv'

    def _parse_scan_results(self, csv_path: str):
        if not os.path.exists(csv_path):
            logger.warning(f"Scan file not found: {csv_path}")
            return [], []
        return self.db.parse_csv_file(csv_path)

    def print_summary(self, networks: List[NetworkRecord], clients: List[ClientRecord]):
        """Print summary of scan results"""
        print('\n' + '=' * 80)
        print('📊 SCAN SUMMARY')
        print('=' * 80)

        if networks:
            print('\n🌐 Networks:')
            print('-' * 80)

            named = sort_by_power([n for n in networks if n.essid and n.essid.strip()])
            for network in named[:SUMMARY_ROWS]:
                print(f"   {network.essid:<25} | {network.bssid} | Ch: {network.channel:<3} "
                      f"| Pwr: {network.power:<4} | {network.privacy}")

            if len(named) > SUMMARY_ROWS:
                print(f"   ... and {len(named) - SUMMARY_ROWS} more networks")

        if clients:
            print('\n👤 Active Clients:')
            print('-' * 80)

            active = [c for c in clients if c.is_associated]
            for client in active[:SUMMARY_ROWS]:
                print(f"   {client.station_mac} -> {client.bssid} | Pwr: {client.power:<4} "
                      f"| Pkts: {client.packets}")

            if len(clients) > SUMMARY_ROWS:
                print(f"   ... and {len(clients) - SUMMARY_ROWS} more clients")

        print('\n' + '=' * 80)

    def _cleanup_old_scans(self):
        """Remove old scan files, keep the last few scans"""
        if not self.keep_scans or not os.path.isdir(self.scan_dir):
            return

        prefixes = sorted({
            f.rsplit('-01.', 1)[0] for f in os.listdir(self.scan_dir)
            if f.startswith('scan-') and '-01.' in f
        })

        for prefix in prefixes[:-self.keep_scans]:
            for name in os.listdir(self.scan_dir):
                if name.startswith(prefix):
                    try:
                        os.remove(os.path.join(self.scan_dir, name))
                    except OSError as e:
                        logger.warning(f"Could not delete {name}: {e}")
