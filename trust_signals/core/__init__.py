"""Ambient runtime concerns: logging, metrics and tracing."""
