"""
Configuration module.

Frozen default parameters, YAML overrides and validation.
"""
