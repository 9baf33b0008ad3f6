"""
High-level use cases for the Spider Music backend.

Each service orchestrates the DocumentStore to implement the app's rules
(register, follow, like, rename, playlists, posts...). Routers call these
services instead of loading or saving collections themselves.
"""
