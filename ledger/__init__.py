"""
Personal Ledger - Source Package

Income/expense tracking for a single user: a persisted transaction store,
pure filtering and aggregation over snapshots of it, and CSV interchange.

DESIGN PRINCIPLES:
1. The store is the only mutable state
2. Views and totals are derived, never stored
3. Fail visibly on bad input; skip bad rows on import
4. Storage layer is swappable
"""

import structlog

__version__ = "1.0.0"
__author__ = "Personal Ledger Team"


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)
