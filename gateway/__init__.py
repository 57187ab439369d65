"""API gateway core: external plugin server discovery and supervision."""
