"""CLI entry point for hostpages."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn
import yaml
from pydantic import ValidationError

from hostpages.config import HostPagesConfig, load_config
from hostpages.logging_config import configure_logging
from hostpages.server import create_app

logger = logging.getLogger("hostpages")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="hostpages",
        description="hostpages - serve per-hostname static files from one object store",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("hostpages.yaml"),
        help="Path to YAML configuration file (default: hostpages.yaml)",
    )
    parser.add_argument("--host", help="Bind address (overrides server.host)")
    parser.add_argument("--port", type=int, help="Listen port (overrides server.port)")
    parser.add_argument(
        "--storage",
        choices=["local", "memory", "aws"],
        help="Storage backend (overrides storage.backend)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides server.log_level)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log format (overrides server.log_format)",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate the config, print the route table and exit",
    )
    return parser.parse_args(argv)


def _load_or_exit(path: Path) -> HostPagesConfig:
    try:
        return load_config(path)
    except FileNotFoundError:
        logger.error("Config file not found: %s", path)
    except ValidationError as exc:
        logger.error("Invalid config %s: %s", path, exc)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Failed to load config %s: %s", path, exc)
    sys.exit(1)


def _apply_overrides(config: HostPagesConfig, args: argparse.Namespace) -> None:
    for section, field, value in (
        (config.server, "host", args.host),
        (config.server, "port", args.port),
        (config.server, "log_level", args.log_level),
        (config.server, "log_format", args.log_format),
        (config.storage, "backend", args.storage),
    ):
        if value is not None:
            setattr(section, field, value)


def describe_routes(config: HostPagesConfig) -> list[str]:
    """Render the route table as ``host path -> key`` lines.

    Allow-listed paths are marked ``(public)``.
    """
    allowed = set(config.routing.allow_list)
    lines = []
    for host in sorted(config.routing.hosts):
        for path, key in sorted(config.routing.hosts[host].items()):
            marker = " (public)" if path in allowed else ""
            lines.append(f"{host}{path} -> {key}{marker}")
    return lines


def main(argv: list[str] | None = None) -> None:
    """Load config, apply overrides, and serve with uvicorn.

    Exits 1 when the config cannot be loaded. With ``--check`` the route
    table is printed and nothing is served.
    """
    args = parse_args(argv)

    # Plain stderr logging until the configured format is known
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    config = _load_or_exit(args.config)
    _apply_overrides(config, args)

    if args.check:
        for line in describe_routes(config):
            print(line)
        print(f"{len(config.routing.allow_list)} public paths, storage={config.storage.backend}")
        return

    configure_logging(level=config.server.log_level, fmt=config.server.log_format)

    if not config.auth.secret.get_secret_value():
        logger.warning(
            "No auth secret configured (set %s); PUT and DELETE will be rejected",
            config.auth.secret_env,
        )

    logger.info(
        "Starting hostpages on %s:%d (storage=%s)",
        config.server.host,
        config.server.port,
        config.storage.backend,
    )

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
        # Keep configure_logging's handler; the app logs its own access lines.
        log_config=None,
        access_log=False,
        timeout_graceful_shutdown=config.server.shutdown_timeout,
        timeout_keep_alive=5,
    )


if __name__ == "__main__":
    main()
