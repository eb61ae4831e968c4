"""Infrastructure adapters: logging, database, task broker."""
