"""
Structured logging package for HealthSync.

All imports should use explicit paths like
'from healthsync.structured_logging.enhanced_logging_config import get_logger'.

The package is named 'structured_logging' rather than 'logging' to avoid
shadowing the standard library module.
"""

__all__: list[str] = []
