"""Feature packages (vertical slices of the API and domain)."""
