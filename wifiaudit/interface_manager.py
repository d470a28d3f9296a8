"""
WiFiAudit Interface Manager
Switches the wireless adapter between managed and monitor mode, and
resolves the adapter name from its MAC address (USB adapters get renamed)
"""

import re
import logging
from typing import Dict, Optional

from .errors import ConfigurationError, InterfaceConfigurationError, SubprocessLaunchError
from .models import canonical_mac
from .process_runner import ProcessRunner

logger = logging.getLogger(__name__)

MONITOR = 'monitor'
MANAGED = 'managed'

# One record per line: "3: wlan1: <...> mtu 1500 ...\    link/ieee802.11/radiotap 00:c0:ca:.. brd .."
_LINK_RE = re.compile(
    r'^\d+:\s+(?P<name>[^:@\s]+)(?:@\S+)?:.*?\slink/(?:ether|ieee802\.11\S*)\s+'
    r'(?P<mac>[0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5})'
)


def get_mac_to_interface_mapping(runner=None) -> Dict[str, str]:
    """Map canonical MAC addresses to interface names using `ip -o link show`

    Loopback and other non-ethernet links are left out. An empty mapping is
    returned when the command cannot be run.
    """
    runner = runner or ProcessRunner(use_sudo=False)
    try:
        result = runner.run(['ip', '-o', 'link', 'show'], timeout=5)
    except SubprocessLaunchError as e:
        logger.error(f"Failed to detect MAC to interface mapping: {e.reason}")
        return {}

    if not result.ok:
        logger.error(f"'ip -o link show' failed: {result.output.strip()[:200]}")
        return {}

    mapping = {}
    for line in result.output.splitlines():
        match = _LINK_RE.match(line.strip())
        if match:
            mapping[canonical_mac(match.group('mac'))] = match.group('name')
            logger.debug(f"Found interface {match.group('name')} with MAC {match.group('mac')}")
    return mapping


def get_interface_by_mac(mac: str, runner=None) -> Optional[str]:
    """Interface name for a MAC address given in any case, ':' or '-' separated"""
    return get_mac_to_interface_mapping(runner).get(canonical_mac(mac))


def resolve_interface(config: Dict, runner=None) -> str:
    """Work out which adapter to drive

    wifi.interface_mac wins when it matches a present adapter, otherwise
    wifi.interface is used. Raises ConfigurationError when neither is usable.
    """
    wifi_config = config.get('wifi', {})
    interface_mac = wifi_config.get('interface_mac')
    interface = wifi_config.get('interface')

    if interface_mac:
        resolved = get_interface_by_mac(interface_mac, runner)
        if resolved:
            logger.info(f"✓ Resolved interface by MAC address: {resolved} ({interface_mac})")
            return resolved
        logger.warning(f"No interface with MAC {interface_mac} - falling back to interface name")

    if not interface:
        raise ConfigurationError(
            "No WiFi interface configured. Set wifi.interface in the config "
            "or the WIFI_INTERFACE environment variable"
        )
    return interface


class InterfaceModeController:
    """Brings an interface down, changes its type and brings it back up"""

    def __init__(self, runner, timeout: float = 15):
        self.runner = runner
        self.timeout = timeout

    def enter_monitor_mode(self, interface: str):
        """Put the interface into monitor mode"""
        logger.info(f"🔧 Setting {interface} to monitor mode...")
        self._set_mode(interface, MONITOR)
        logger.info(f"✓ Monitor mode enabled on {interface}")

    def enter_managed_mode(self, interface: str):
        """Put the interface back into managed mode"""
        logger.info(f"🔧 Setting {interface} back to managed mode...")
        self._set_mode(interface, MANAGED)
        logger.info(f"✓ Managed mode enabled on {interface}")

    def _set_mode(self, interface: str, mode: str):
        steps = [
            ('down', ['ip', 'link', 'set', interface, 'down']),
            ('set-mode', ['iw', 'dev', interface, 'set', 'type', mode]),
            ('up', ['ip', 'link', 'set', interface, 'up']),
        ]

        for step, command in steps:
            try:
                result = self.runner.run(command, timeout=self.timeout)
            except SubprocessLaunchError as e:
                raise InterfaceConfigurationError(interface, step, mode, e.reason) from e

            if not result.ok:
                logger.error(f"Step '{step}' failed for {interface}: {result.output.strip()[:200]}")
                raise InterfaceConfigurationError(interface, step, mode, result.output.strip())
