"""Infrastructure Layer: database, security, broadcast and logging plumbing.

Invariants:
    - Infrastructure never imports services/ or api/
    - Library exceptions are mapped to core/errors.py types at this boundary

Design Decisions:
    - Process-wide singletons (db_manager, broadcast_hub) created here, wired in main.py
"""
