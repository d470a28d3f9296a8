"""
WiFiAudit Web Interface
Flask JSON API over the scan database
"""

import os
import sys
import logging
from datetime import datetime
from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wifiaudit.config import load_config
from wifiaudit.database import ScanDatabase, sort_by_power

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 10


def _flag(value, default=False):
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes')


def _scan_summary(scan):
    return {
        'timestamp': scan.timestamp,
        'duration': scan.duration,
        'networks': len(scan.networks),
        'clients': len(scan.clients)
    }


def create_app(config, database=None):
    """Create the Flask application for the given configuration"""
    app = Flask(__name__)
    CORS(app)

    db = database or ScanDatabase(config['paths']['database'])
    app.config['DATABASE'] = db

    @app.errorhandler(Exception)
    def handle_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.error(f"API error on {request.path}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

    @app.route('/api/status')
    def get_status():
        """Get overall system status"""
        return jsonify({
            'success': True,
            'status': {
                'version': config['system']['version'],
                'debug_mode': config['debug'].get('enabled', False),
                'statistics': db.get_statistics(),
                'timestamp': datetime.now().isoformat()
            }
        })

    @app.route('/api/networks')
    def get_networks():
        """Get discovered networks, strongest first"""
        wpa_only = _flag(request.args.get('wpa_only'))

        if wpa_only:
            networks = db.list_target_networks()
        else:
            networks = sort_by_power(list(db.load().unique_networks.values()))

        return jsonify({
            'success': True,
            'networks': [n.to_dict() for n in networks]
        })

    @app.route('/api/networks/<bssid>/clients')
    def get_network_clients(bssid):
        """Get clients associated with a network"""
        clients = db.get_clients_for_network(bssid)
        return jsonify({
            'success': True,
            'bssid': bssid,
            'clients': [c.to_dict() for c in clients]
        })

    @app.route('/api/clients')
    def get_clients():
        """Get all known clients"""
        clients = sort_by_power(list(db.load().unique_clients.values()))
        return jsonify({
            'success': True,
            'clients': [c.to_dict() for c in clients]
        })

    @app.route('/api/scans')
    def get_scans():
        """Get scan history, most recent first"""
        try:
            limit = int(request.args.get('limit', DEFAULT_SCAN_LIMIT))
        except ValueError:
            return jsonify({'success': False, 'error': 'limit must be an integer'}), 400

        scans = list(reversed(db.load().scans))
        if limit > 0:
            scans = scans[:limit]

        return jsonify({
            'success': True,
            'scans': [_scan_summary(s) for s in scans]
        })

    @app.route('/api/export', methods=['POST'])
    def export_data():
        """Export database to JSON"""
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        export_dir = os.path.dirname(config['paths']['database']) or '.'
        export_path = os.path.join(export_dir, f"wifiaudit_export_{timestamp}.json")

        db.export_data(export_path)

        return jsonify({
            'success': True,
            'path': export_path
        })

    @app.route('/api/database/reset', methods=['POST'])
    def reset_database():
        """Reset database (with backup)"""
        data = request.get_json(silent=True) or {}
        keep_backup = data.get('keep_backup', True)

        backup_path = db.reset_database(keep_backup=keep_backup)

        return jsonify({
            'success': True,
            'message': 'Database reset successfully',
            'backup': backup_path
        })

    return app


if __name__ == '__main__':
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = load_config(debug='--debug' in sys.argv)
    host = config['web']['host']
    port = config['web']['port']

    logger.info(f"Starting WiFiAudit Web Interface on {host}:{port}")
    create_app(config).run(host=host, port=port, debug=False)
