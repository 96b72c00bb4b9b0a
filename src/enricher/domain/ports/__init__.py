"""Ports (Protocols) the domain depends on."""
