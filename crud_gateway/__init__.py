"""HTTP gateway: JSON API and htmx table browser over the configured database."""
