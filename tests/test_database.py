"""Tests for the JSON scan database and airodump-ng CSV parsing."""

import json
import os

import pytest

from wifiaudit.database import ScanDatabase, parse_capture_csv, parse_csv_line, sort_by_power
from wifiaudit.models import NOT_ASSOCIATED, ClientRecord, NetworkRecord, ScanEvent

NETWORK_HEADER = ("BSSID, First time seen, Last time seen, channel, Speed, Privacy, Cipher, "
                  "Authentication, Power, # beacons, # IV, LAN IP, ID-length, ESSID, Key")
NETWORK_ROW = ("AA:BB:CC:DD:EE:FF, 2025-01-01 12:00:00, 2025-01-01 12:05:00,  6, 54, WPA2, CCMP, PSK, "
               "-40, 120, 0, 0.  0.  0.  0, 7, TestNet, ")
CLIENT_HEADER = "Station MAC, First time seen, Last time seen, Power, # packets, BSSID, Probed ESSIDs"
CLIENT_ROW = ("11:22:33:44:55:66, 2025-01-01 12:00:00, 2025-01-01 12:05:00, -55, 42, "
              "AA:BB:CC:DD:EE:FF, HomeNet,Office WiFi")


def make_network(bssid='AA:BB:CC:DD:EE:FF', essid='TestNet', power='-40', privacy='WPA2', **kwargs):
    return NetworkRecord(bssid=bssid, essid=essid, power=power, privacy=privacy, channel='6', **kwargs)


def make_client(mac='11:22:33:44:55:66', bssid='AA:BB:CC:DD:EE:FF', power='-55', **kwargs):
    return ClientRecord(station_mac=mac, bssid=bssid, power=power, **kwargs)


def make_scan(networks=(), clients=(), timestamp='2025-01-01T12:00:00+00:00'):
    return ScanEvent(timestamp=timestamp, duration=60, networks=networks, clients=clients)


class TestCsvParsing:
    """Tests for airodump-ng CSV parsing."""

    def test_network_row_field_order(self):
        network = parse_csv_line(NETWORK_ROW)

        assert network.bssid == 'AA:BB:CC:DD:EE:FF'
        assert network.first_seen == '2025-01-01 12:00:00'
        assert network.last_seen == '2025-01-01 12:05:00'
        assert network.channel == '6'
        assert network.speed == '54'
        assert network.privacy == 'WPA2'
        assert network.cipher == 'CCMP'
        assert network.authentication == 'PSK'
        assert network.power == '-40'
        assert network.beacons == '120'
        assert network.iv == '0'
        assert network.id_length == '7'
        assert network.essid == 'TestNet'
        assert network.key == ''

    def test_header_and_row_yield_one_network(self):
        networks, clients = parse_capture_csv('\n'.join(['', NETWORK_HEADER, NETWORK_ROW]))

        assert len(networks) == 1
        assert networks[0].essid == 'TestNet'
        assert clients == []

    def test_header_only_yields_nothing(self):
        assert parse_csv_line(NETWORK_HEADER) is None
        assert parse_capture_csv(NETWORK_HEADER) == ([], [])

    def test_short_rows_are_skipped(self):
        assert parse_csv_line('AA:BB:CC:DD:EE:FF, 2025-01-01') is None
        assert parse_csv_line('11:22:33:44:55:66, x, y', is_client=True) is None

    def test_client_section(self):
        text = '\r\n'.join(['', NETWORK_HEADER, NETWORK_ROW, '', CLIENT_HEADER, CLIENT_ROW, ''])
        networks, clients = parse_capture_csv(text)

        assert len(networks) == 1
        assert len(clients) == 1
        client = clients[0]
        assert client.station_mac == '11:22:33:44:55:66'
        assert client.power == '-55'
        assert client.packets == '42'
        assert client.bssid == 'AA:BB:CC:DD:EE:FF'
        # Commas inside the probed names are kept
        assert client.probed_essids == 'HomeNet,Office WiFi'

    def test_station_marker_mid_file_switches_section(self):
        # No network rows at all before the station header
        text = '\n'.join([CLIENT_HEADER, CLIENT_ROW])
        networks, clients = parse_capture_csv(text)

        assert networks == []
        assert len(clients) == 1

    def test_rows_after_marker_parse_as_clients(self):
        text = '\n'.join([NETWORK_HEADER, 'junk Station MAC junk', NETWORK_ROW])
        networks, clients = parse_capture_csv(text)

        # The network-shaped row is now read as a client
        assert networks == []
        assert clients[0].station_mac == 'AA:BB:CC:DD:EE:FF'

    def test_unassociated_client(self):
        row = '11:22:33:44:55:77, 2025-01-01 12:00:00, 2025-01-01 12:00:00, -70, 3, (not associated) , '
        client = parse_csv_line(row, is_client=True)

        assert client.bssid == NOT_ASSOCIATED
        assert not client.is_associated


class TestPersistence:
    """Tests for loading and saving the JSON store."""

    def test_missing_file_loads_empty(self, db):
        loaded = db.load()

        assert loaded.scans == []
        assert loaded.unique_networks == {}
        assert loaded.unique_clients == {}

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / 'db.json'
        path.write_text('{not json')

        loaded = ScanDatabase(str(path)).load()

        assert loaded.scans == []

    @pytest.mark.parametrize('document', [
        {'scans': 5, 'unique_networks': {}, 'unique_clients': {}},
        {'scans': [], 'unique_networks': [{'bssid': 'AA:BB:CC:DD:EE:FF'}], 'unique_clients': {}},
        {'scans': [], 'unique_networks': {}, 'unique_clients': ['11:22:33:44:55:66']},
        {'scans': 'oops'},
    ])
    def test_wrong_layout_loads_empty(self, tmp_path, document):
        path = tmp_path / 'db.json'
        path.write_text(json.dumps(document))
        db = ScanDatabase(str(path))

        loaded = db.load()

        assert loaded.scans == []
        assert loaded.unique_networks == {}
        assert loaded.unique_clients == {}
        assert db.get_statistics()['total_scans'] == 0
        assert db.get_clients_for_network('AA:BB:CC:DD:EE:FF') == []

    def test_saved_document_layout(self, db):
        db.merge(make_scan(
            networks=[make_network('BB:00:00:00:00:02', 'Zeta'), make_network('AA:00:00:00:00:01', 'Alpha')],
            clients=[make_client()]
        ))

        with open(db.db_path) as f:
            document = json.load(f)

        assert set(document) == {'scans', 'unique_networks', 'unique_clients'}
        assert list(document['unique_networks']) == ['AA:00:00:00:00:01', 'BB:00:00:00:00:02']
        assert document['unique_clients']['11:22:33:44:55:66']['station_mac'] == '11:22:33:44:55:66'
        assert document['scans'][0]['duration'] == 60

    def test_round_trip_preserves_records(self, db):
        network = make_network(cipher='CCMP', beacons='12')
        db.merge(make_scan(networks=[network], clients=[make_client(probed_essids='A,B')]))

        loaded = db.load()

        assert loaded.unique_networks['AA:BB:CC:DD:EE:FF'] == network
        assert loaded.unique_clients['11:22:33:44:55:66'].probed_essids == 'A,B'
        assert loaded.scans[0].networks == (network,)

    def test_no_temp_files_left_behind(self, db):
        db.merge(make_scan(networks=[make_network()]))

        leftovers = [n for n in os.listdir(os.path.dirname(db.db_path)) if n.startswith('.wifiaudit-')]
        assert leftovers == []


class TestMerge:
    """Tests for merge semantics."""

    def test_merge_twice_is_idempotent_for_mappings(self, tmp_path):
        scan = make_scan(networks=[make_network()], clients=[make_client()])

        once = ScanDatabase(str(tmp_path / 'once.json'))
        once.merge(scan)
        twice = ScanDatabase(str(tmp_path / 'twice.json'))
        twice.merge(scan)
        twice.merge(scan)

        a, b = once.load(), twice.load()
        assert len(a.scans) == 1
        assert len(b.scans) == 2
        assert a.unique_networks == b.unique_networks
        assert a.unique_clients == b.unique_clients

    def test_latest_record_wins(self, db):
        db.merge(make_scan(networks=[make_network(power='-80', essid='Old')],
                           clients=[make_client(power='-90')]))
        db.merge(make_scan(networks=[make_network(power='-30', essid='New')],
                           clients=[make_client(power='-20', bssid=NOT_ASSOCIATED)]))
        db.merge(make_scan(networks=[make_network('CC:CC:CC:CC:CC:CC', 'Other')]))

        loaded = db.load()
        assert loaded.unique_networks['AA:BB:CC:DD:EE:FF'].essid == 'New'
        assert loaded.unique_networks['AA:BB:CC:DD:EE:FF'].power == '-30'
        assert loaded.unique_clients['11:22:33:44:55:66'].bssid == NOT_ASSOCIATED
        assert len(loaded.unique_networks) == 2

    def test_network_identity_ignores_case(self, db):
        db.merge(make_scan(networks=[make_network('aa:bb:cc:dd:ee:ff', essid='Lower', power='-70')]))
        db.merge(make_scan(networks=[make_network('AA:BB:CC:DD:EE:FF', essid='Upper', power='-40')]))

        networks = db.load().unique_networks
        assert len(networks) == 1
        assert networks['AA:BB:CC:DD:EE:FF'].essid == 'Upper'

    def test_client_identity_ignores_case(self, db):
        db.merge(make_scan(clients=[make_client('11:22:33:44:55:aa', power='-80')]))
        db.merge(make_scan(clients=[make_client('11-22-33-44-55-AA', power='-30')]))

        clients = db.load().unique_clients
        assert list(clients) == ['11:22:33:44:55:AA']
        assert clients['11:22:33:44:55:AA'].power == '-30'

    def test_stored_lowercase_keys_are_canonicalized(self, tmp_path):
        path = tmp_path / 'db.json'
        path.write_text(json.dumps({
            'scans': [],
            'unique_networks': {'aa:bb:cc:dd:ee:ff': make_network('aa:bb:cc:dd:ee:ff', essid='Old').to_dict()},
            'unique_clients': {},
        }))
        db = ScanDatabase(str(path))

        db.merge(make_scan(networks=[make_network('AA:BB:CC:DD:EE:FF', essid='New')]))

        networks = db.load().unique_networks
        assert list(networks) == ['AA:BB:CC:DD:EE:FF']
        assert networks['AA:BB:CC:DD:EE:FF'].essid == 'New'

    def test_history_is_append_only(self, db):
        first = make_scan(networks=[make_network()], timestamp='2025-01-01T10:00:00+00:00')
        second = make_scan(timestamp='2025-01-01T11:00:00+00:00')
        db.merge(first)
        db.merge(second)

        scans = db.load().scans
        assert [s.timestamp for s in scans] == [first.timestamp, second.timestamp]
        assert scans[0] == first


class TestQueries:
    """Tests for target selection and statistics."""

    def test_stats_after_single_merge(self, db):
        db.merge(make_scan(networks=[make_network()]))

        stats = db.stats()

        assert stats['total_scans'] == 1
        assert stats['unique_networks'] == 1
        assert stats['unique_clients'] == 0
        assert stats['latest_scan']['networks'] == 1
        assert stats['top_networks'][0]['essid'] == 'TestNet'
        assert stats['top_networks'][0]['power'] == '-40'

    def test_stats_on_empty_database(self, db):
        stats = db.get_statistics()

        assert stats['total_scans'] == 0
        assert stats['latest_scan'] is None
        assert stats['top_networks'] == []

    def test_print_stats(self, db, capsys):
        db.merge(make_scan(networks=[make_network()]))
        db.print_stats()

        out = capsys.readouterr().out
        assert 'Total scans performed: 1' in out
        assert 'TestNet' in out

    def test_target_networks_filtered_and_sorted(self, db):
        db.merge(make_scan(networks=[
            make_network('00:00:00:00:00:01', 'Weak', power='-85'),
            make_network('00:00:00:00:00:02', 'Strong', power='-35', privacy='WPA2 WPA'),
            make_network('00:00:00:00:00:03', 'Open', power='-20', privacy='OPN'),
            make_network('00:00:00:00:00:04', '', power='-10'),
            make_network('00:00:00:00:00:05', 'NoPower', power='n/a'),
        ]))

        names = [n.essid for n in db.list_target_networks()]
        assert names == ['Strong', 'Weak', 'NoPower']

    def test_clients_for_network_case_insensitive(self, db):
        db.merge(make_scan(clients=[
            make_client('11:11:11:11:11:11', bssid='aa:bb:cc:dd:ee:ff'),
            make_client('22:22:22:22:22:22', bssid=NOT_ASSOCIATED),
        ]))

        clients = db.get_clients_for_network('AA:BB:CC:DD:EE:FF')
        assert [c.station_mac for c in clients] == ['11:11:11:11:11:11']

    def test_sort_by_power_unknown_last(self):
        records = [make_network(power=''), make_network(power='-50'), make_network(power='-20')]
        assert [r.power for r in sort_by_power(records)] == ['-20', '-50', '']


class TestExportReset:
    """Tests for export and reset."""

    def test_export(self, db, tmp_path):
        db.merge(make_scan(networks=[make_network()]))
        path = db.export_data(str(tmp_path / 'out' / 'export.json'))

        with open(path) as f:
            export = json.load(f)

        assert export['statistics']['unique_networks'] == 1
        assert 'AA:BB:CC:DD:EE:FF' in export['unique_networks']
        assert 'export_date' in export

    def test_reset_keeps_backup(self, db):
        db.merge(make_scan(networks=[make_network()]))

        backup = db.reset_database()

        assert backup and os.path.exists(backup)
        assert db.get_statistics()['total_scans'] == 0

    def test_reset_without_backup(self, db):
        db.merge(make_scan(networks=[make_network()]))

        assert db.reset_database(keep_backup=False) is None
        assert db.load().unique_networks == {}
