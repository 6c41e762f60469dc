"""Support library for goshell (configuration loading)."""
