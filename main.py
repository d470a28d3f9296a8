#!/usr/bin/env python3
"""
WiFiAudit Main Entry Point
Scan, statistics, handshake capture and web dashboard commands
"""

import os
import sys
import argparse
import logging

from wifiaudit import __version__
from wifiaudit.config import default_config_path, load_config
from wifiaudit.database import ScanDatabase
from wifiaudit.errors import WiFiAuditError

logger = logging.getLogger(__name__)


def setup_logging(config):
    """Log to ./logs/wifiaudit.log and stdout"""
    log_dir = config['paths']['log_dir']
    os.makedirs(log_dir, exist_ok=True)

    verbose = config['debug'].get('enabled') and config['debug'].get('verbose_logging')
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, 'wifiaudit.log')),
            logging.StreamHandler(sys.stdout)
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='wifiaudit',
        description='WiFi scan database and WPA/WPA2 handshake capture',
        epilog='Example: sudo python main.py scan 120'
    )
    parser.add_argument('--debug', action='store_true',
                        help='use config/config.debug.json and simulated tools')
    parser.add_argument('--config', metavar='PATH',
                        help='configuration file (default: config/config.json)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    scan = subparsers.add_parser('scan', help='run a timed scan and merge it into the database')
    scan.add_argument('duration', nargs='?', type=int, help='scan duration in seconds')

    subparsers.add_parser('stats', help='print database statistics')

    capture = subparsers.add_parser('capture', help='pick a WPA network and capture a handshake')
    capture.add_argument('--duration', type=int, help='capture duration in seconds')
    capture.add_argument('--deauth-count', type=int, help='deauth frames per burst')
    capture.add_argument('--interval', type=float, help='seconds between deauth bursts')

    subparsers.add_parser('web', help='start the web dashboard')

    seed = subparsers.add_parser('seed', help='fill the database with generated scans')
    seed.add_argument('--scans', type=int, default=3, help='number of scans to generate')

    return parser


def print_legal_warning():
    print("\n" + "=" * 60)
    print("LEGAL WARNING")
    print("=" * 60)
    print("This tool is for AUTHORIZED security testing only.")
    print("Capturing or deauthenticating networks you do not own")
    print("or have written permission to test is illegal.")
    print("=" * 60 + "\n")


def cmd_scan(config, args):
    from wifiaudit.wifi_scanner import WiFiScanner

    scanner = WiFiScanner(config)
    scanner.scan(args.duration)
    return 0


def cmd_stats(config, args):
    ScanDatabase(config['paths']['database']).print_stats()
    return 0


def cmd_capture(config, args):
    from wifiaudit.handshake_capture import HandshakeCapture

    capture = HandshakeCapture(config)
    capture.capture_handshake_interactive(
        duration=args.duration,
        deauth_count=args.deauth_count,
        deauth_interval=args.interval
    )
    return 0


def cmd_web(config, args):
    from web.app import create_app

    app = create_app(config)
    host = config['web']['host']
    port = config['web']['port']

    logger.info(f"Starting WiFiAudit Web Interface on {host}:{port}")
    app.run(host=host, port=port, debug=False)
    return 0


def cmd_seed(config, args):
    from wifiaudit.test_data_generator import TestDataGenerator

    db = ScanDatabase(config['paths']['database'])
    TestDataGenerator(db).generate_scans(args.scans)
    db.print_stats()
    return 0


COMMANDS = {
    'scan': cmd_scan,
    'stats': cmd_stats,
    'capture': cmd_capture,
    'web': cmd_web,
    'seed': cmd_seed,
}

# Commands that drive the wireless adapter
PRIVILEGED_COMMANDS = ('scan', 'capture')


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config or default_config_path(args.debug))
    except WiFiAuditError as e:
        print(f"ERROR: {e}")
        return 1

    setup_logging(config)

    debug_mode = config['debug'].get('enabled', False)
    if debug_mode:
        logger.warning("=" * 60)
        logger.warning("DEBUG MODE ENABLED - Using simulated wireless tools")
        logger.warning("=" * 60)

    # Check if running as root (skip in debug mode)
    if args.command in PRIVILEGED_COMMANDS and not debug_mode and os.name != 'nt':
        if os.geteuid() != 0:
            print("ERROR: WiFiAudit must be run as root for this command")
            print("Please run with sudo or as root user")
            return 1

    if args.command in PRIVILEGED_COMMANDS:
        print_legal_warning()

    try:
        return COMMANDS[args.command](config, args)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except WiFiAuditError as e:
        logger.error(f"❌ {e}")
        return 1

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
