"""CalcSync: calculator history service with real-time sync.

Invariants:
    - Package root contains no executable code beyond the version constant

Design Decisions:
    - Explicit imports only, no star exports
"""

__version__ = "1.0.0"
