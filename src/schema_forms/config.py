"""
Configuration module for schema-forms.

Handles environment variables and default settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default).lower()).lower() == "true"


@dataclass
class SchemaFormsConfig:
    """Configuration settings for schema-forms."""

    # Compiler cache
    enable_cache: bool = True
    cache_max_size: int = 100

    # Validation messages
    locale: str = "en-US"

    # JSON Schema export
    json_schema_draft: str = "http://json-schema.org/draft-07/schema#"
    default_strict_mode: bool = False
    include_examples: bool = True

    # Tracing settings
    enable_tracing: bool = False
    trace_file: str | None = None
    verbose_output: bool = False

    @classmethod
    def from_env(cls) -> "SchemaFormsConfig":
        """
        Create configuration from environment variables.

        If an environment variable is not set, uses the class field default value.
        """
        _defaults = cls()

        return cls(
            enable_cache=_env_bool("SCHEMA_FORMS_ENABLE_CACHE", _defaults.enable_cache),
            cache_max_size=int(os.getenv("SCHEMA_FORMS_CACHE_MAX_SIZE", str(_defaults.cache_max_size))),
            locale=os.getenv("SCHEMA_FORMS_LOCALE", _defaults.locale),
            default_strict_mode=_env_bool("SCHEMA_FORMS_STRICT_MODE", _defaults.default_strict_mode),
            include_examples=_env_bool("SCHEMA_FORMS_INCLUDE_EXAMPLES", _defaults.include_examples),
            enable_tracing=_env_bool("SCHEMA_FORMS_ENABLE_TRACING", _defaults.enable_tracing),
            trace_file=os.getenv("SCHEMA_FORMS_TRACE_FILE", _defaults.trace_file),
            verbose_output=_env_bool("SCHEMA_FORMS_VERBOSE", _defaults.verbose_output),
        )


config = SchemaFormsConfig.from_env()


def get_config() -> SchemaFormsConfig:
    """Get the current configuration."""
    return config


def update_config(**kwargs) -> SchemaFormsConfig:
    """Update configuration settings."""
    global config
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
    return config
