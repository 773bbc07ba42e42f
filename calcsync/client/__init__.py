"""Client Library: HTTP client, real-time connection and list-view synchronization.

Invariants:
    - Nothing here imports the server stack (FastAPI, SQLAlchemy); only httpx + core
    - Errors surface as the same CalcSyncError hierarchy the server renders

Design Decisions:
    - Explicit imports only, no star exports
"""
