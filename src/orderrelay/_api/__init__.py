"""Boundary parsing for inbound HTTP bodies and push-channel frames."""
