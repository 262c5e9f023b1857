"""Request execution services."""
