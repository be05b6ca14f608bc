"""Configuration helpers: YAML parsing, schema validation and logging setup."""
