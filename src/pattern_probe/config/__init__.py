"""Configuration for pattern validation limits, caching and storage."""

from pattern_probe.config.settings import ProbeSettings, ValidationLimits, load_settings

__all__ = ["ProbeSettings", "ValidationLimits", "load_settings"]
