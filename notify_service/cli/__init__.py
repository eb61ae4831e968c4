"""Management CLI for notify-service."""
