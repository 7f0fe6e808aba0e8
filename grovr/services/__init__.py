"""Services for grovr."""
