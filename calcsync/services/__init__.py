"""Services Layer: orchestration between routes, core rules and persistence.

Invariants:
    - MutationService is the only writer of calculation rows
    - Services raise core/errors.py types; routes never build error responses by hand

Design Decisions:
    - One service per concern (mutation, query, identity) over one god object
"""
