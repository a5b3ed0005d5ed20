"""Driver-facing interfaces."""
