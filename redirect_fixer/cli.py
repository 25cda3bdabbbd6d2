"""
1.0 Command Line Interface
`redirect-fixer` entry point: check-url, check-csv and check-posts.

Examples:
    redirect-fixer check-url --target https://example.com/contact-us/
    redirect-fixer check-csv --file redirects.csv --target-host example.com --limit 10
    redirect-fixer check-posts --export site.xml --post-type post --format table
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import yaml

from redirect_fixer.batch_runner import BatchRunner
from redirect_fixer.config import BatchConfig, CONFIG_FILE_PATH, ResolverConfig, load_config
from redirect_fixer.content_lookup import ContentFallbackLookup, DocumentCollection
from redirect_fixer.errors import ConfigError, RedirectFixerError
from redirect_fixer.models import BatchReport, ResolveRequest
from redirect_fixer.output_formatter import DEFAULT_FORMAT, FORMATS, format_records
from redirect_fixer.redirect_resolver import RedirectResolver
from redirect_fixer.wxr_source import load_wxr

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """1.1 Configure process-wide logging once (stderr, plus an optional file)."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


# =============================================================================
# 2. ARGUMENTS
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--home-host", default=None,
                        help="Host the links were written for (e.g. example.com or www.example.com)")
    common.add_argument("--target-host", default=None,
                        help="Host to check against instead of --home-host (e.g. staging.example.com)")
    common.add_argument("--username", default=None, help="Username for basic authentication")
    common.add_argument("--password", default=None, help="Password for basic authentication")
    common.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds (default: 30)")
    common.add_argument("--max-redirects", type=int, default=None, help="Redirect chain bound (default: 20)")
    common.add_argument("--config", default=None, help=f"JSON config file (default: {CONFIG_FILE_PATH} if present)")
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    common.add_argument("--log-file", default=None, help="Also write logs to this file")

    parser = argparse.ArgumentParser(
        prog="redirect-fixer",
        description="Resolve links to their final destination and report redirects and broken links",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # 2.1 check-url
    p_url = subparsers.add_parser("check-url", parents=[common], help="Resolve a single URL")
    p_url.add_argument("--target", required=True, help="The URL to check")
    p_url.add_argument("--existing", default=None, help="Known redirect destination to try on 404/410")
    p_url.add_argument("--export", default=None, help="WXR export used for slug fallback")

    # 2.2 check-csv
    p_csv = subparsers.add_parser("check-csv", parents=[common], help="Resolve the URLs of a delimited list")
    p_csv.add_argument("--file", required=True, help="Delimited list: url[,existing redirect] per line")
    p_csv.add_argument("--limit", type=int, default=None, help="Maximum number of rows (default: no limit)")
    p_csv.add_argument("--offset", type=int, default=None, help="Rows to skip first")
    p_csv.add_argument("--delay", type=float, default=None, help="Delay between requests in seconds")
    p_csv.add_argument("--format", choices=FORMATS, default=DEFAULT_FORMAT, help="Output format")
    p_csv.add_argument("--export", default=None, help="WXR export used for slug fallback")

    # 2.3 check-posts
    p_posts = subparsers.add_parser("check-posts", parents=[common], help="Resolve the links found in posts")
    p_posts.add_argument("--export", required=True, help="WXR export holding the posts")
    p_posts.add_argument("--post-type", default="post", help="Post type(s), comma separated, or 'any' (default: post)")
    p_posts.add_argument("--post-status", default="any", help="Post status(es), comma separated (default: any)")
    p_posts.add_argument("--per-page", type=int, default=100, help="Number of posts to check (default: 100)")
    p_posts.add_argument("--offset", type=int, default=0, help="Posts to skip first")
    p_posts.add_argument("--post-in", default=None, help="Comma separated post ids; overrides paging")
    p_posts.add_argument("--delay", type=float, default=None, help="Delay between requests in seconds")
    p_posts.add_argument("--dry-run", action="store_true", help="Only list the links that would be checked")
    p_posts.add_argument("--format", choices=FORMATS, default=DEFAULT_FORMAT, help="Output format")

    return parser


def build_configs(args: argparse.Namespace) -> Tuple[ResolverConfig, BatchConfig]:
    """
    2.4 Merge the config file with command line overrides.

    Raises:
        ConfigError: unreadable config file or invalid value
    """
    path = args.config or (CONFIG_FILE_PATH if os.path.exists(CONFIG_FILE_PATH) else None)
    file_config: Dict[str, Any] = {}
    if path:
        file_config = load_config(path)
        if file_config is None:
            raise ConfigError(f"Could not load configuration from {path}")

    overrides = {
        "home_host": args.home_host,
        "target_host": args.target_host,
        "username": args.username,
        "password": args.password,
        "timeout_seconds": args.timeout,
        "max_redirects": args.max_redirects,
        "inter_request_delay_seconds": getattr(args, "delay", None),
    }
    if args.command == "check-csv":
        overrides["limit"] = args.limit
        overrides["offset"] = args.offset

    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    return ResolverConfig.from_dict(merged), BatchConfig.from_dict(merged)


def _split(value: Optional[str]) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


# =============================================================================
# 3. COMMANDS
# =============================================================================

def _build_resolver(resolver_config: ResolverConfig, store: Optional[DocumentCollection]) -> RedirectResolver:
    lookup = ContentFallbackLookup(store) if store is not None else None
    return RedirectResolver(content_lookup=lookup, config=resolver_config)


def check_url(args, resolver_config: ResolverConfig, batch_config: BatchConfig) -> int:
    store = load_wxr(args.export) if args.export else None
    resolver = _build_resolver(resolver_config, store)

    try:
        result = resolver.resolve(ResolveRequest(
            target_url=args.target.strip(),
            existing_hint=args.existing,
            home_host=batch_config.home_host,
            target_host=batch_config.target_host,
            credentials=batch_config.credentials,
        ))
    finally:
        resolver.close()

    print(yaml.safe_dump({
        "url": args.target.strip(),
        "outcome": result.outcome.value,
        "status_code": result.status_code,
        "final_location": result.final_location,
        "chain_length": result.chain_length,
        "error": result.error,
    }, sort_keys=False, default_flow_style=False).rstrip("\n"))

    return 1 if result.is_failure else 0


def check_csv(args, resolver_config: ResolverConfig, batch_config: BatchConfig) -> int:
    store = load_wxr(args.export) if args.export else None
    resolver = _build_resolver(resolver_config, store)

    try:
        report = BatchRunner(resolver, batch_config).run(args.file)
    finally:
        resolver.close()

    logger.info(f"[OK] Found {len(report.redirects)} redirects and {len(report.broken_links)} broken links.")
    print_report(report, args.format)
    return 0


def check_posts(args, resolver_config: ResolverConfig, batch_config: BatchConfig) -> int:
    store = load_wxr(args.export)

    logger.info("Loading posts...")
    post_ids = [int(i) for i in _split(args.post_in)]
    documents = store.select(
        kinds=_split(args.post_type),
        statuses=_split(args.post_status),
        ids=post_ids,
        limit=args.per_page,
        offset=args.offset,
    )

    if not documents:
        logger.warning("No posts found matching the criteria.")
        return 0

    logger.info(f"Found {len(documents)} posts starting from offset {args.offset}. Processing...")

    resolver = _build_resolver(resolver_config, store)
    try:
        report = BatchRunner(resolver, batch_config).run_documents(documents, dry_run=args.dry_run)
    finally:
        resolver.close()

    logger.info(
        f"[OK] Found {len(report.redirects)} redirects and {len(report.broken_links)} broken links. "
        f"Skipped {report.skipped} posts."
    )
    print_report(report, args.format)
    return 0


def print_report(report: BatchReport, fmt: str) -> None:
    """3.4 Write the report sections to stdout."""
    if report.redirects:
        print("=== REDIRECTS ===")
        print(format_records(report.redirects, fmt, is_redirect=True))

    if report.broken_links:
        print("=== BROKEN LINKS ===")
        print(format_records(report.broken_links, fmt, is_redirect=False))

    if report.cancelled:
        logger.warning(f"Run was cancelled after {report.processed} URLs; the report is partial")


COMMANDS = {
    "check-url": check_url,
    "check-csv": check_csv,
    "check-posts": check_posts,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    4.0 CLI entry point.

    Returns:
        0 on success, 1 on configuration or input-file failures
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        resolver_config, batch_config = build_configs(args)
        return COMMANDS[args.command](args, resolver_config, batch_config)
    except RedirectFixerError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        # e.g. a non-numeric --post-in id
        logger.error(f"Invalid argument: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
