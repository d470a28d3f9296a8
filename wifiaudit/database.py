"""
WiFiAudit Database Module
Persists scan history plus the latest record of every network and client
seen, and parses airodump-ng CSV output into records.
"""

import json
import os
import shutil
import tempfile
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .errors import StorageReadError, StorageWriteError
from .models import (
    NOT_ASSOCIATED, ClientRecord, Database, NetworkRecord, ScanEvent, canonical_mac, power_value
)

logger = logging.getLogger(__name__)

CLIENT_SECTION_MARKER = 'Station MAC'
NETWORK_HEADER = 'BSSID'
MIN_NETWORK_FIELDS = 14
MIN_CLIENT_FIELDS = 6
TOP_NETWORKS = 15


def parse_csv_line(line: str, is_client: bool = False):
    """Parse one airodump-ng CSV row

    Returns a NetworkRecord / ClientRecord, or None for header and
    malformed rows.
    """
    parts = [p.strip() for p in line.split(',')]

    if is_client:
        # Station MAC, First time seen, Last time seen, Power, # packets, BSSID, Probed ESSIDs
        if len(parts) < MIN_CLIENT_FIELDS or not parts[0] or parts[0] == CLIENT_SECTION_MARKER:
            return None

        return ClientRecord(
            station_mac=parts[0],
            first_seen=parts[1],
            last_seen=parts[2],
            power=parts[3],
            packets=parts[4],
            bssid=parts[5] or NOT_ASSOCIATED,
            # Probed ESSIDs may themselves contain commas
            probed_essids=','.join(parts[6:]).strip()
        )

    # BSSID, First time seen, Last time seen, channel, Speed, Privacy, Cipher,
    # Authentication, Power, # beacons, # IV, LAN IP, ID-length, ESSID, Key
    if len(parts) < MIN_NETWORK_FIELDS or not parts[0] or parts[0] == NETWORK_HEADER:
        return None

    return NetworkRecord(
        bssid=parts[0],
        first_seen=parts[1],
        last_seen=parts[2],
        channel=parts[3],
        speed=parts[4],
        privacy=parts[5],
        cipher=parts[6],
        authentication=parts[7],
        power=parts[8],
        beacons=parts[9],
        iv=parts[10],
        lan_ip=parts[11],
        id_length=parts[12],
        essid=parts[13],
        key=parts[14] if len(parts) > 14 else ''
    )


def parse_capture_csv(text: str) -> Tuple[List[NetworkRecord], List[ClientRecord]]:
    """Parse the two-section airodump-ng CSV (access points, then stations)"""
    networks = []
    clients = []
    is_client_section = False

    for line in text.splitlines():
        if not line.strip():
            continue

        # The client header switches sections and is not itself a record
        if CLIENT_SECTION_MARKER in line:
            is_client_section = True
            continue

        record = parse_csv_line(line, is_client=is_client_section)
        if record is None:
            continue
        if is_client_section:
            clients.append(record)
        else:
            networks.append(record)

    return networks, clients


def sort_by_power(records: List) -> List:
    """Strongest first; unreadable power sorts last"""
    return sorted(records, key=lambda r: power_value(r.power), reverse=True)


class ScanDatabase:
    """JSON-file backed scan database"""

    def __init__(self, db_path: str = "./data/wifi-scan-db.json"):
        """Initialize database location"""
        self.db_path = db_path

    def _ensure_directory(self):
        """Ensure database directory exists"""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    # Persistence
    def _read_document(self) -> Dict:
        try:
            with open(self.db_path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageReadError(f"Could not read {self.db_path}: {e}") from e

        if not isinstance(document, dict):
            raise StorageReadError(f"{self.db_path} does not contain a JSON object")
        return document

    def load(self) -> Database:
        """Load the database; a missing or unreadable file gives an empty one"""
        if not os.path.exists(self.db_path):
            return Database()

        try:
            document = self._read_document()
        except StorageReadError as e:
            logger.warning(f"{e} - starting with an empty database")
            return Database()

        db = Database()

        scans = document.get('scans') or []
        networks = document.get('unique_networks') or {}
        clients = document.get('unique_clients') or {}
        if not isinstance(scans, list) or not isinstance(networks, dict) or not isinstance(clients, dict):
            logger.warning(f"{self.db_path} has an unexpected layout - starting with an empty database")
            return db

        for entry in scans:
            try:
                db.scans.append(ScanEvent.from_dict(entry))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed scan entry: {e}")

        for bssid, entry in networks.items():
            if isinstance(entry, dict):
                db.unique_networks[canonical_mac(bssid)] = NetworkRecord.from_dict(entry)
            else:
                logger.warning(f"Skipping malformed network entry for {bssid}")

        for mac, entry in clients.items():
            if isinstance(entry, dict):
                db.unique_clients[canonical_mac(mac)] = ClientRecord.from_dict(entry)
            else:
                logger.warning(f"Skipping malformed client entry for {mac}")

        return db

    def _serialize(self, db: Database) -> Dict:
        return {
            'scans': [scan.to_dict() for scan in db.scans],
            'unique_networks': {k: db.unique_networks[k].to_dict() for k in sorted(db.unique_networks)},
            'unique_clients': {k: db.unique_clients[k].to_dict() for k in sorted(db.unique_clients)}
        }

    def save(self, db: Database):
        """Write the whole database, replacing the previous file"""
        document = self._serialize(db)
        tmp_path = None
        try:
            self._ensure_directory()
            fd, tmp_path = tempfile.mkstemp(
                prefix='.wifiaudit-', suffix='.json',
                dir=os.path.dirname(self.db_path) or '.'
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.db_path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageWriteError(f"Could not write {self.db_path}: {e}") from e

    # CSV ingestion
    def parse_csv_file(self, csv_path: str) -> Tuple[List[NetworkRecord], List[ClientRecord]]:
        """Parse an airodump-ng CSV file"""
        with open(csv_path, 'r', encoding='utf-8', errors='ignore') as f:
            return parse_capture_csv(f.read())

    # Mutation
    def merge(self, scan: ScanEvent) -> Database:
        """Append a scan to the history and upsert its records (latest wins)"""
        db = self.load()

        db.scans.append(scan)
        for network in scan.networks:
            db.unique_networks[canonical_mac(network.bssid)] = network
        for client in scan.clients:
            db.unique_clients[canonical_mac(client.station_mac)] = client

        self.save(db)

        logger.info(f"📊 Database updated: {len(db.scans)} scans, "
                    f"{len(db.unique_networks)} unique networks, "
                    f"{len(db.unique_clients)} unique clients")
        return db

    # Queries
    def list_target_networks(self) -> List[NetworkRecord]:
        """Named WPA/WPA2 networks, strongest first"""
        db = self.load()
        networks = [
            n for n in db.unique_networks.values()
            if n.essid and n.essid.strip() and n.is_wpa
        ]
        return sort_by_power(networks)

    def get_clients_for_network(self, bssid: str) -> List[ClientRecord]:
        """Clients last seen associated with the given BSSID"""
        db = self.load()
        target = canonical_mac(bssid)
        return [c for c in db.unique_clients.values() if c.bssid and canonical_mac(c.bssid) == target]

    def get_statistics(self) -> Dict:
        """Get database statistics"""
        db = self.load()

        stats = {
            'total_scans': len(db.scans),
            'unique_networks': len(db.unique_networks),
            'unique_clients': len(db.unique_clients),
            'latest_scan': None,
            'top_networks': []
        }

        if db.scans:
            latest = db.scans[-1]
            stats['latest_scan'] = {
                'timestamp': latest.timestamp,
                'duration': latest.duration,
                'networks': len(latest.networks),
                'clients': len(latest.clients)
            }

        named = [n for n in db.unique_networks.values() if n.essid and n.essid.strip() and n.power]
        stats['top_networks'] = [n.to_dict() for n in sort_by_power(named)[:TOP_NETWORKS]]

        return stats

    stats = get_statistics

    def print_stats(self):
        """Print database statistics"""
        stats = self.get_statistics()

        print('\n' + '=' * 80)
        print('📈 DATABASE STATISTICS')
        print('=' * 80)
        print(f"Total scans performed: {stats['total_scans']}")
        print(f"Unique networks discovered: {stats['unique_networks']}")
        print(f"Unique clients seen: {stats['unique_clients']}")

        latest = stats['latest_scan']
        if latest:
            print(f"\nLast scan: {_format_timestamp(latest['timestamp'])}")
            print(f"Duration: {latest['duration']}s")
            print(f"Networks found: {latest['networks']}")
            print(f"Clients found: {latest['clients']}")

        if stats['top_networks']:
            print('\n🌐 Top Networks by Power:')
            print('-' * 80)
            for network in stats['top_networks']:
                print(f"   {network['essid']:<25} | {network['bssid']} | Ch: {network['channel']:<3} "
                      f"| Pwr: {network['power']:<4} | {network['privacy']}")

        print('\n' + '=' * 80)

    # Export and reset
    def export_data(self, export_path: str) -> str:
        """Export the database and its statistics to a JSON file"""
        export = {
            'export_date': datetime.now().isoformat(),
            'statistics': self.get_statistics(),
        }
        export.update(self._serialize(self.load()))

        try:
            directory = os.path.dirname(export_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(export_path, 'w', encoding='utf-8') as f:
                json.dump(export, f, indent=2)
        except OSError as e:
            raise StorageWriteError(f"Could not export to {export_path}: {e}") from e

        logger.info(f"Data exported to {export_path}")
        return export_path

    def reset_database(self, keep_backup: bool = True) -> Optional[str]:
        """Replace the database with an empty one

        Returns the backup path when a backup was made.
        """
        backup_path = None
        if keep_backup and os.path.exists(self.db_path):
            backup_path = f"{self.db_path}.backup.{datetime.now().strftime('%Y%m%d_%H%M%S')}"
            try:
                shutil.copy2(self.db_path, backup_path)
            except OSError as e:
                raise StorageWriteError(f"Could not back up {self.db_path}: {e}") from e
            logger.info(f"Database backed up to {backup_path} before reset")

        self.save(Database())
        logger.info("Database reset complete")
        return backup_path


def _format_timestamp(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp.replace('Z', '+00:00')).strftime('%Y-%m-%d %H:%M:%S')
    except ValueError:
        return timestamp
