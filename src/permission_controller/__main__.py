"""
Permission Controller - Command Line

Inspect and initialize permission system configuration.
"""

import argparse
import logging
import sys
from pathlib import Path

import yaml

from .bootstrap import configure_logging
from .config import create_default_config, load_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m permission_controller",
        description="Permission Controller configuration tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write a starter permissions.yaml
  python -m permission_controller init

  # Print the effective configuration
  python -m permission_controller show --config ./config/permissions.yaml
"""
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Write a default permissions.yaml")
    init_parser.add_argument(
        'path',
        nargs='?',
        default=None,
        help='Output path (default: ./permissions.yaml)'
    )
    init_parser.add_argument(
        '--force',
        action='store_true',
        help='Overwrite an existing file'
    )

    show_parser = subparsers.add_parser("show", help="Print the effective configuration as YAML")
    show_parser.add_argument(
        '--config', '-c',
        default=None,
        help='Configuration file (default: search for permissions.yaml)'
    )

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "init":
        output_path = Path(args.path) if args.path else Path("permissions.yaml")
        if output_path.exists() and not args.force:
            logger.error(f"{output_path} already exists (use --force to overwrite)")
            return 1
        create_default_config(output_path)
        print(f"Wrote {output_path}")
        return 0

    if args.command == "show":
        try:
            config = load_config(args.config)
        except (FileNotFoundError, KeyError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Could not load configuration: {e}")
            return 1
        configure_logging(config.logging)
        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)
        print(yaml.safe_dump(config.to_dict(), sort_keys=False), end="")
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
