"""Core Layer: pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, client/ or db/
    - All functions are pure and deterministic

Design Decisions:
    - Functional core separated from imperative shell: server and client library
      share evaluate(), the error hierarchy and SSE framing from here
"""
