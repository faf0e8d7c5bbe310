"""
PathHawk - Concurrent Web Content Discovery
Version: 1.0.0

Finds reachable files and directories on web servers with:
- Async scanning engine with a global concurrency cap
- Path, subdomain, parameter, header and body fuzzing
- Status and size based result filtering
- Bounded recursion into discovered directories
"""

import logging

__version__ = '1.0.0'

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def configure_logging(level='INFO'):
    """Configure root logging once for command line use."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
