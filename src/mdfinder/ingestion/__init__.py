"""Document parsing helpers."""
