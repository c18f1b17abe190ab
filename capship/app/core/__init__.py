"""
Core package — cross-cutting concerns.

Modules:
    config          — settings from config file, environment and flags
    logging_config  — structured logging with a TRACE level
    errors          — exception hierarchy & handlers
    middleware      — request logging
"""
