"""CRAWL Stealth — Browser fingerprint, pacing and proxy settings."""
from .fingerprint import FingerprintManager, LAUNCH_ARGS
from .behavior import HumanBehavior
from .proxy import ProxyManager

__all__ = ["FingerprintManager", "LAUNCH_ARGS", "HumanBehavior", "ProxyManager"]
