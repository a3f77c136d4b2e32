"""Route handlers of the admin API."""
