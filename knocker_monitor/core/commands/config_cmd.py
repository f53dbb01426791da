import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from ...config.config import Config
from ...utils.log_setup import setup_logging


def _coerce(current_value: Any, value: str) -> Any:
    if isinstance(current_value, bool):
        return value.lower() in ['true', '1', 'yes', 'on']
    if isinstance(current_value, int):
        return int(value)
    if isinstance(current_value, float):
        return float(value)
    if current_value is None and value.lower() in ['none', 'null', '']:
        return None
    return value


def _resolve(config: Config, key: str):
    """Return (section object, option name) for 'section.option', or raise KeyError."""
    parts = key.split('.')
    if len(parts) != 2:
        raise KeyError(f"Invalid option format: {key}. Use 'section.option' format")
    section, option = parts
    if not hasattr(config, section):
        raise KeyError(f"Unknown section: {section}")
    section_obj = getattr(config, section)
    if not hasattr(section_obj, option):
        raise KeyError(f"Unknown option: {option} in section {section}")
    return section_obj, option


def run_config_commands(config_path: Optional[Path] = None, set_options: Optional[List[tuple]] = None,
                        get_option: Optional[str] = None, list_config: bool = False,
                        validate_config: bool = False, reset_config: bool = False) -> int:
    """
    Run configuration management commands.
    """
    try:
        if not config_path:
            config_path = Path(os.environ.get('KNOCKER_MONITOR_CONFIG') or Config.default_path())

        log_level = os.environ.get('KNOCKER_MONITOR_LOG_LEVEL', "WARNING")
        setup_logging(log_level)

        if reset_config:
            Config().save(config_path)
            print(f"Configuration reset to defaults: {config_path}")
            return 0

        config = Config.load(config_path)

        if validate_config:
            errors = config.validate()
            if errors:
                print("Configuration validation failed:", file=sys.stderr)
                for error in errors:
                    print(f"  - {error}", file=sys.stderr)
                return 1
            print("Configuration is valid")
            return 0

        if set_options:
            for key, value in set_options:
                try:
                    section_obj, option = _resolve(config, key)
                except KeyError as e:
                    print(e.args[0], file=sys.stderr)
                    return 1
                setattr(section_obj, option, _coerce(getattr(section_obj, option), value))

            config.save(config_path)
            print(f"Configuration updated: {config_path}")

        if get_option:
            try:
                section_obj, option = _resolve(config, get_option)
            except KeyError as e:
                print(e.args[0], file=sys.stderr)
                return 1
            print(f"{get_option} = {getattr(section_obj, option)}")

        if list_config:
            print(f"Configuration ({config_path}):")
            for section, options in config.to_dict().items():
                print(f"  [{section}]")
                for key, value in options.items():
                    print(f"    {key} = {value}")
                print()

            overrides = config.get_env_overrides()
            if overrides:
                print("Environment overrides:")
                for key, value in overrides.items():
                    print(f"    {key} = {value}")

        return 0

    except Exception as e:
        logging.error(f"Config command error: {e}")
        return 1
