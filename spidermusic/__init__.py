"""Spider Music backend: JSON document store, services and a thin HTTP surface."""
