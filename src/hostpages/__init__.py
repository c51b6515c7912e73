"""hostpages: serve per-hostname static files from one object store."""
