# mdrich/logging/tags.py
"""
Logging subsystem tags.

Prefix log messages with these so output stays searchable:
    logger.info(f"{PIPELINE} Processing {path}")
"""

PIPELINE = "[PIPELINE]"
CHAT = "[CHAT]"
LEDGER = "[LEDGER]"
RATE_LIMIT = "[RATE_LIMIT]"
VALIDATION = "[VALIDATION]"
WRITER = "[WRITER]"
CONFIG = "[CONFIG]"
CLI = "[CLI]"
