"""
Core utilities shared across the Spider Music backend.

This package hosts:
- configuration helpers (env vars, storage paths, store flags)
- cross-cutting concerns such as logging setup and password hashing

Services and repositories should depend on these primitives instead of
reading os.environ directly.
"""
