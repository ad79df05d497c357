"""Nakadi client configuration from YAML file.

Loads from config/config.yaml:
- Broker URL and timeouts
- Token source (literal token, token file or environment variable)

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
NAKADI_URL and NAKADI_TIMEOUT_SECONDS override the file values.
"""

import json
import logging
import os
import re
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml

from core.types import TokenProvider

# Configure module logger
logger = logging.getLogger(__name__)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        # Support both ${VAR} and ${VAR:-default} syntax
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "config.yaml"


@dataclass
class NakadiSettings:
    """Nakadi client settings.

    Configuration structure:
        nakadi:
          url: http://localhost:8080
          timeout_seconds: 30              # control-plane requests, stream connect
          stream_read_timeout_seconds: 60  # idle limit between stream chunks (null: none)
          token: ""                        # literal token (local brokers only)
          token_file: ""                   # file re-read on every request
          token_env: ""                    # environment variable holding the token

    The first non-empty token source wins (token, token_file, token_env).
    Without any, requests are sent unauthenticated.
    """

    url: str = "http://localhost:8080"
    timeout_seconds: float = 30.0
    stream_read_timeout_seconds: Optional[float] = None
    token: str = ""
    token_file: str = ""
    token_env: str = ""

    def token_provider(self) -> Optional[TokenProvider]:
        """Build the token provider for the configured token source, if any."""
        from nakadi.auth import static_token, token_from_env, token_from_file

        if self.token:
            return static_token(self.token)
        if self.token_file:
            return token_from_file(self.token_file)
        if self.token_env:
            return token_from_env(self.token_env)
        return None

    def validate(self) -> None:
        """Validate settings, raising ValueError on the first problem found."""
        parsed = urlparse(self.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"nakadi.url must be an http(s) URL, got '{self.url}'")

        if self.timeout_seconds <= 0:
            raise ValueError(f"nakadi.timeout_seconds must be > 0, got {self.timeout_seconds}")

        if self.stream_read_timeout_seconds is not None and self.stream_read_timeout_seconds <= 0:
            raise ValueError(
                f"nakadi.stream_read_timeout_seconds must be > 0, got {self.stream_read_timeout_seconds}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Settings as a dict with secrets masked."""
        data = asdict(self)
        if data["token"]:
            data["token"] = "***"
        return data


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _as_float(value: Any, name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a number, got '{value}'") from e


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> NakadiSettings:
    """Load Nakadi client configuration from config.yaml file.

    Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n" f"Expected file: config/config.yaml"
        )

    logger.info(f"Loading configuration from file: {config_path}")
    yaml_data = load_yaml(config_path)
    yaml_data = _expand_env_vars(yaml_data)

    if "nakadi" not in yaml_data:
        raise ValueError(
            "Invalid config file: missing 'nakadi:' section\n"
            "See src/config/config.yaml for correct structure"
        )

    nakadi_config = yaml_data["nakadi"] or {}

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        nakadi_config = _deep_merge(nakadi_config, overrides)

    timeout_seconds = _as_float(
        os.getenv("NAKADI_TIMEOUT_SECONDS") or nakadi_config.get("timeout_seconds", 30),
        "nakadi.timeout_seconds",
    )

    config = NakadiSettings(
        url=str(os.getenv("NAKADI_URL") or nakadi_config.get("url", "http://localhost:8080")).rstrip("/"),
        timeout_seconds=30.0 if timeout_seconds is None else timeout_seconds,
        stream_read_timeout_seconds=_as_float(
            nakadi_config.get("stream_read_timeout_seconds"),
            "nakadi.stream_read_timeout_seconds",
        ),
        token=str(nakadi_config.get("token") or ""),
        token_file=str(nakadi_config.get("token_file") or ""),
        token_env=str(nakadi_config.get("token_env") or ""),
    )

    logger.debug(f"Configuration loaded successfully:")
    logger.debug(f"  - Nakadi URL: {config.url}")
    logger.debug(f"  - Timeout: {config.timeout_seconds}s")
    logger.debug(f"  - Authenticated: {config.token_provider() is not None}")

    logger.debug("Validating configuration...")
    config.validate()
    logger.debug("Configuration validation passed")

    return config


_nakadi_config: Optional[NakadiSettings] = None


def get_config() -> NakadiSettings:
    """Get or load the singleton Nakadi config instance."""
    global _nakadi_config
    if _nakadi_config is None:
        _nakadi_config = load_config()
    return _nakadi_config


def set_config(config: NakadiSettings) -> None:
    """Set the singleton Nakadi config instance (useful for testing)."""
    global _nakadi_config
    _nakadi_config = config


def reset_config() -> None:
    """Reset the singleton config instance (forces reload on next get_config() call)."""
    global _nakadi_config
    _nakadi_config = None


def _cli_main() -> int:
    """CLI entry point for config validation and debugging."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Nakadi Client Configuration Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate configuration
  python -m config.config --validate

  # Show effective configuration (token masked)
  python -m config.config --show

  # Use custom config file, JSON output for automation
  python -m config.config --config /path/to/config.yaml --validate --json
        """,
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Display effective configuration",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config.yaml file (default: src/config/config.yaml)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format instead of human-readable",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    if not args.validate and not args.show:
        parser.print_help()
        return 0

    try:
        config = load_config(config_path=args.config)
        output: Dict[str, Any] = {}

        if args.validate:
            # Validation happens during load_config(), if we got here it passed
            if args.json:
                output["validation"] = {"passed": True, "errors": []}
            else:
                print("✓ Configuration validation passed")

        if args.show:
            if args.json:
                output["config"] = config.to_dict()
            else:
                print(yaml.dump({"nakadi": config.to_dict()}, default_flow_style=False, sort_keys=False))

        if args.json:
            print(json.dumps(output, indent=2))

        return 0

    except FileNotFoundError as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Error: {e}", file=sys.stderr)
        return 1

    except ValueError as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Validation error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(_cli_main())
