"""
Command-line entry point for static-deploy.

Merges the configuration layers (environment < YAML file < flags), validates
them and runs the deploy. Exit codes: 0 on a completed run, 1 on invalid
configuration, unreadable local files or failed uploads, 130 when
interrupted.

Usage:
    static-deploy
    static-deploy -c deploy/prod.yaml --dry-run
    static-deploy --public-dir build --path-prefix /v2/ --storage-bucket my-site
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from static_deploy import __version__
from static_deploy.deployer import run_deploy
from static_deploy.utils.config import env_layer, split_list
from static_deploy.utils.config_loader import (
    DEFAULT_CONFIG_FILE,
    build_run_config,
    get_config_example,
    load_config,
    merge_layers,
)
from static_deploy.utils.errors import ConfigurationError, DeployError
from static_deploy.utils.logging import get_logger, setup_logging
from static_deploy.utils.metrics import write_metrics_file

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="static-deploy",
        description="Deploy a directory of static assets to an object storage bucket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Deploy using .deploy.yaml and DEPLOY_* environment variables
  %(prog)s

  # Use another config file and only show what would be uploaded
  %(prog)s -c deploy/prod.yaml --dry-run

  # Override single settings
  %(prog)s --public-dir build --path-prefix /v2/ --chunk-size 10

Environment:
  DEPLOY_PUBLIC_DIR, DEPLOY_PATH_PREFIX, DEPLOY_STABLE_ASSET_EXTS,
  DEPLOY_CHUNK_SIZE, DEPLOY_STORAGE_REGION, DEPLOY_STORAGE_BUCKET,
  DEPLOY_STORAGE_AK, DEPLOY_STORAGE_SK, DEPLOY_STORAGE_ENDPOINT
  (DEPLOY_OSS_REGION/BUCKET/AK/SK and DEPLOY_STABLE_ASSETS_EXTS also accepted)
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        help=f"YAML config file (default: {DEFAULT_CONFIG_FILE}, ignored if missing)",
    )
    parser.add_argument("--public-dir", help="Local directory to deploy (default: dist)")
    parser.add_argument("--path-prefix", help="Remote key prefix, e.g. /v1/ (default: /)")
    parser.add_argument(
        "--stable-asset-exts",
        help="Comma separated extensions cached long-term (default: jpg,png,gif,ico,js,css)",
    )
    parser.add_argument("--chunk-size", type=int, help="Concurrent uploads per batch (default: 20)")
    parser.add_argument("--storage-region", help="Bucket region")
    parser.add_argument("--storage-bucket", help="Bucket name")
    parser.add_argument("--storage-access-key-id", help="Access key ID")
    parser.add_argument("--storage-access-key-secret", help="Access key secret")
    parser.add_argument("--storage-endpoint", help="S3-compatible endpoint URL")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compare with the bucket and log decisions without uploading",
    )
    parser.add_argument(
        "--metrics-file",
        help="Write Prometheus metrics of the run to this file (textfile collector format)",
    )
    parser.add_argument(
        "--example-config",
        action="store_true",
        help="Print an example config file and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def cli_layer(args: argparse.Namespace) -> Dict[str, Any]:
    """Config layer from command-line flags; unset flags are left out."""
    layer: Dict[str, Any] = {}

    if args.public_dir:
        layer["publicDir"] = args.public_dir
    if args.path_prefix:
        layer["pathPrefix"] = args.path_prefix
    if args.stable_asset_exts:
        layer["stableAssetExts"] = split_list(args.stable_asset_exts)
    if args.chunk_size is not None:
        layer["chunkSize"] = args.chunk_size

    storage = {
        key: value
        for key, value in (
            ("region", args.storage_region),
            ("bucket", args.storage_bucket),
            ("accessKeyId", args.storage_access_key_id),
            ("accessKeySecret", args.storage_access_key_secret),
            ("endpoint", args.storage_endpoint),
        )
        if value
    }
    if storage:
        layer["storage"] = storage

    return layer


def file_layer(config_path: Optional[str]) -> Dict[str, Any]:
    """Config layer from the YAML file; the default file is optional."""
    if config_path is None:
        default = Path(DEFAULT_CONFIG_FILE)
        return load_config(default) if default.is_file() else {}
    return load_config(config_path)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the deploy CLI."""
    args = parse_args(argv)

    if args.example_config:
        print(get_config_example(), end="")
        return 0

    if args.verbose:
        setup_logging(level="DEBUG")

    try:
        raw = merge_layers(env_layer(), file_layer(args.config), cli_layer(args))
        config = build_run_config(raw, dry_run=args.dry_run)
    except ConfigurationError as e:
        print("❌ Configuration error:")
        for error in e.errors:
            print(f"  • {error}")
        return 1
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"❌ Cannot load configuration: {e}")
        return 1

    try:
        report = run_deploy(config)
    except KeyboardInterrupt:
        print("\n⚠️  Deploy cancelled by user")
        return 130
    except DeployError as e:
        logger.error(f"Deploy aborted: {e}")
        print(f"❌ Deploy aborted: {e}")
        return 1

    print(f"\n📊 Deploy summary: {report.summary()}")

    if args.metrics_file:
        try:
            write_metrics_file(args.metrics_file)
        except OSError as e:
            logger.error(f"Cannot write metrics file {args.metrics_file}: {e}")
            print(f"⚠️  Metrics not written: {e}")

    if not report.succeeded:
        print("\n❌ Failed files:")
        for relative_path, message in report.failed:
            print(f"  • {relative_path}: {message}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
