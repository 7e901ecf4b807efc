"""Deploy and clean up ephemeral debugging pods from YAML templates."""

__version__ = "0.1.0"
