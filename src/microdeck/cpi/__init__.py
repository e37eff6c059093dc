"""CPI release handling: validation, installation and support processes."""

from microdeck.cpi.installer import CPIInstaller
from microdeck.cpi.processes import SupportProcessManager
from microdeck.cpi.release import ReleaseValidator, extract_release

__all__ = [
    "CPIInstaller",
    "ReleaseValidator",
    "SupportProcessManager",
    "extract_release",
]
