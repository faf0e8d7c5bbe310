"""
PathHawk Scanner Engine

High-performance async content discovery with recursive expansion.
"""

from pathhawk.scanner.core.engine import ScanCoordinator, ScanConfig
from pathhawk.scanner.core.requester import AsyncRequester
from pathhawk.scanner.core.template import TargetTemplate

__all__ = ['ScanCoordinator', 'ScanConfig', 'AsyncRequester', 'TargetTemplate']
