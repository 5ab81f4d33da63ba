from .envfile import (
    EnvEntry,
    ParsedEnv,
    format_assignment,
    format_export,
    format_key_value,
    is_valid_key,
    parse_env_text,
    parse_env_text_strict,
    quote_value,
    validate_key,
)

__all__ = [
    "EnvEntry",
    "ParsedEnv",
    "format_assignment",
    "format_export",
    "format_key_value",
    "is_valid_key",
    "parse_env_text",
    "parse_env_text_strict",
        "quote_value",
    "validate_key",
]
