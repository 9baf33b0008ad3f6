"""
Persistence adapters.

Today every collection is a JSON array file managed by `json_storage`.
Services depend on the DocumentStore handed to them rather than touching the
files directly.
"""
