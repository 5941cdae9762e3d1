"""Cricket match alert scheduler."""
