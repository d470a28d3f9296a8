"""
WiFiAudit Errors
Exception hierarchy shared by all modules
"""

from typing import List, Optional


class WiFiAuditError(Exception):
    """Base class for all WiFiAudit errors"""


class ConfigurationError(WiFiAuditError):
    """Configuration is missing or invalid (raised before any tool is launched)"""


class InterfaceConfigurationError(WiFiAuditError):
    """A step of an interface mode transition failed"""

    def __init__(self, interface: str, step: str, mode: str, output: str = ''):
        self.interface = interface
        self.step = step
        self.mode = mode
        self.output = output
        message = f"Failed to set {interface} to {mode} mode (step '{step}' failed)"
        if output:
            message += f": {output[:200]}"
        super().__init__(message)


class SubprocessLaunchError(WiFiAuditError):
    """An external tool could not be started or died during startup"""

    def __init__(self, command: List[str], reason: str):
        self.command = list(command)
        self.reason = reason
        super().__init__(f"{' '.join(self.command)}: {reason}")


class TransientInjectionError(WiFiAuditError):
    """A deauthentication burst failed; always recovered locally"""

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message)


class StorageReadError(WiFiAuditError):
    """The scan database could not be read; recovered with an empty database"""


class StorageWriteError(WiFiAuditError):
    """The scan database could not be written"""
