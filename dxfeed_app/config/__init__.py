"""
Configuration module.

Built-in defaults, YAML file loading with override precedence, and
validation of the merged configuration.
"""
