class ConfigError(Exception):
    """Raised when document type configuration is unreadable or inconsistent."""
