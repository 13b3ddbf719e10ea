"""Type mapping and host-source extraction."""
