"""
PathHawk Scanner Core Components

Contains the scan coordinator, worker, HTTP requester, classifier,
queue and request templates.
"""

from pathhawk.scanner.core.classifier import FilterConfig, FilterError, ResultClassifier
from pathhawk.scanner.core.engine import ConfigurationError, ScanConfig, ScanCoordinator, ScanSummary
from pathhawk.scanner.core.models import ScanOutcome, ScanTarget, Verdict, WorkItem
from pathhawk.scanner.core.requester import AsyncRequester, RequestMethod, TransportError
from pathhawk.scanner.core.template import FuzzMode, TargetTemplate, TemplateError

__all__ = [
    'ScanCoordinator', 'ScanConfig', 'ScanSummary', 'ConfigurationError',
    'AsyncRequester', 'RequestMethod', 'TransportError',
    'FilterConfig', 'FilterError', 'ResultClassifier',
    'ScanOutcome', 'ScanTarget', 'Verdict', 'WorkItem',
    'FuzzMode', 'TargetTemplate', 'TemplateError',
]
