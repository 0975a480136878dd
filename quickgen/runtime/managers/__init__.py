"""Data access managers for the quickgen runtime.

Each module provides async functions (or a controller) that wrap the
synchronous workspace store and add the business rules.  Managers raise
domain exceptions (``LookupError``, ``ValueError``), never HTTP
exceptions -- that translation is the router's responsibility.
"""
