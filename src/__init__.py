"""TinyDates matching service."""
