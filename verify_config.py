#!/usr/bin/env python3
"""Simple script to verify config.example.yaml structure without importing the package."""

import yaml
from pathlib import Path

AI_NUMERIC_KEYS = {
    'max_tokens': int,
    'temperature': (int, float),
    'timeout_seconds': (int, float),
    'batch_size': int,
    'batch_delay_seconds': (int, float),
    'min_match_score': int,
    'cache_max_entries': int,
    'cache_ttl_seconds': int,
}


def verify_config_structure(config_file: Path = Path("config.example.yaml")) -> bool:
    """Verify the example config has the expected sections and value types."""
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        print(f"✗ Failed to parse {config_file}: {e}")
        return False

    errors = []

    if not isinstance(config, dict):
        errors.append("Top level must be a mapping")
        config = {}

    ai = config.get('ai', {})
    if not isinstance(ai, dict):
        errors.append("'ai' must be a dictionary")
        ai = {}

    if 'enabled' in ai and not isinstance(ai['enabled'], bool):
        errors.append("'ai.enabled' must be true or false")
    if 'model' in ai and not (isinstance(ai['model'], str) and ai['model'].strip()):
        errors.append("'ai.model' must be a non-empty string")
    for key, expected in AI_NUMERIC_KEYS.items():
        value = ai.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, expected)):
            errors.append(f"'ai.{key}' must be a number")
    if isinstance(ai.get('min_match_score'), int) and not 0 <= ai['min_match_score'] <= 100:
        errors.append("'ai.min_match_score' must be between 0 and 100")

    logging_section = config.get('logging', {})
    if not isinstance(logging_section, dict):
        errors.append("'logging' must be a dictionary")
    else:
        level = str(logging_section.get('level', 'INFO')).upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"'logging.level' is invalid: {level}")
        if logging_section.get('format', 'key-value') not in ('json', 'key-value'):
            errors.append("'logging.format' must be 'json' or 'key-value'")

    if 'tables_path' in config and not isinstance(config['tables_path'], str):
        errors.append("'tables_path' must be a path string")

    if errors:
        print(f"✗ {config_file} validation failed:")
        for error in errors:
            print(f"  - {error}")
        return False

    print(f"✓ {config_file} structure is valid")
    print(f"  - AI ranking: {'enabled' if ai.get('enabled', True) else 'disabled'}")
    print(f"  - Model: {ai.get('model', 'default')}")
    print(f"  - Batch size: {ai.get('batch_size', 'default')}")
    print(f"  - Log format: {logging_section.get('format', 'key-value')}")
    return True


if __name__ == "__main__":
    import sys
    success = verify_config_structure()
    sys.exit(0 if success else 1)
