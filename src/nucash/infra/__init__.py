"""Infrastructure adapters: persistence, observability, and the HTTP API."""
