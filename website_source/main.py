#!/usr/bin/env python3
"""
Website Source - download the static front-end sources of a website.

Discovers every HTML, CSS, JS, image, font and manifest file a page
references, fetches them through a chain of CORS proxies and packages them
into a ZIP archive.

Usage:
    python -m website_source.main --url https://example.com --output ./sources

Features:
    - Recursive discovery through HTML, CSS, JavaScript (syntax tree) and manifests
    - Sequential or parallel (worker pool) crawling
    - Proxy fallback chain with custom headers
    - Retry pass with CDN lookup for failed scripts and stylesheets
    - Optional inlining of recovered files as data URIs
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from website_source.crawler import (
    Archive,
    ConcurrencyMode,
    CrawlResult,
    CrawlWarning,
    FetchCache,
    GeminiCdnResolver,
    NetworkLog,
    ProgressUpdate,
    ProxyTransport,
    RecoveryEngine,
    RequestOptions,
    RootFetchError,
    SourceCrawler,
    format_bytes,
)
from website_source.utils.constants import (
    DEFAULT_POOL_SIZE,
    DEFAULT_PROXIES,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    DIRECT_PROXY,
)
from website_source.utils.log import (
    create_progress,
    print_error,
    print_info,
    print_status,
    print_success,
    print_warning,
    setup_logger,
)
from website_source.utils.paths import prepare_root_url, site_archive_name
from website_source.utils.progress import EtaEstimator


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Argument list (default: sys.argv)

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog='website-source',
        description='Download the static front-end sources of a website',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --url example.com --output ./sources
    %(prog)s --url https://example.com --mode parallel --workers 8
    %(prog)s --url https://example.com --retry --inline --header "X-Token: abc"
        """
    )

    parser.add_argument(
        '--url', '-u',
        type=str,
        required=True,
        help='URL of the page to download (https:// is added if missing)'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        default='./sources',
        help='Directory the ZIP archive is written to (default: ./sources)'
    )

    parser.add_argument(
        '--mode',
        choices=[mode.value for mode in ConcurrencyMode],
        default=ConcurrencyMode.SEQUENTIAL.value,
        help='Crawl sequentially or with a worker pool (default: sequential)'
    )

    parser.add_argument(
        '--workers', '-w',
        type=int,
        default=DEFAULT_POOL_SIZE,
        help=f'Worker pool size in parallel mode (default: {DEFAULT_POOL_SIZE})'
    )

    parser.add_argument(
        '--timeout',
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f'Timeout per request attempt in seconds (default: {DEFAULT_TIMEOUT})'
    )

    # Request options
    parser.add_argument(
        '--user-agent',
        type=str,
        default=DEFAULT_USER_AGENT,
        help='User-Agent header sent with every request'
    )

    parser.add_argument(
        '--header', '-H',
        action='append',
        default=[],
        metavar='"NAME: VALUE"',
        help='Extra request header (repeatable)'
    )

    parser.add_argument(
        '--cookie',
        type=str,
        help='Cookie header value'
    )

    parser.add_argument(
        '--authorization',
        type=str,
        help='Authorization header value'
    )

    parser.add_argument(
        '--referer',
        type=str,
        help='Referer header value'
    )

    # Transport
    parser.add_argument(
        '--proxy',
        action='append',
        default=None,
        help='Proxy prefix to use instead of the default chain (repeatable, tried in order)'
    )

    parser.add_argument(
        '--direct',
        action='store_true',
        help='Try a direct request before any proxy'
    )

    parser.add_argument(
        '--max-resources',
        type=int,
        default=None,
        help='Stop discovering new URLs after this many (default: unlimited)'
    )

    # Recovery
    parser.add_argument(
        '--retry',
        action='store_true',
        help='Retry failed downloads, with a CDN lookup for scripts and stylesheets'
    )

    parser.add_argument(
        '--inline',
        action='store_true',
        help='With --retry, inline recovered files into their referrers as data URIs'
    )

    parser.add_argument(
        '--network-log',
        type=str,
        help='Write the network log as JSON to this path'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write log messages to this file'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress output except errors'
    )

    return parser.parse_args(argv)


def build_request_options(args: argparse.Namespace) -> RequestOptions:
    """Build request options from the parsed arguments."""
    return RequestOptions(
        user_agent=args.user_agent,
        cookies=args.cookie,
        authorization=args.authorization,
        referer=args.referer,
        raw_headers='\n'.join(args.header) if args.header else None
    )


def build_proxy_chain(args: argparse.Namespace) -> Optional[List[str]]:
    """
    Build the proxy chain from the parsed arguments.

    Returns:
        Proxy prefixes, or None for the default chain
    """
    if args.proxy is None and not args.direct:
        return None

    proxies = list(args.proxy) if args.proxy is not None else list(DEFAULT_PROXIES)
    if args.direct:
        proxies.insert(0, DIRECT_PROXY)
    return proxies


def build_resolver() -> Optional[GeminiCdnResolver]:
    """Create the CDN resolver if an API key is configured."""
    if not os.environ.get("GEMINI_API_KEY"):
        print_warning("GEMINI_API_KEY not set; CDN lookup disabled")
        return None
    return GeminiCdnResolver()


def print_banner() -> None:
    """Print the application banner."""
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                     WEBSITE SOURCE v1.0                       ║
║           Static Front-End Source Acquisition Tool            ║
╚═══════════════════════════════════════════════════════════════╝
    """
    print_status(banner, "bold cyan")


def print_summary(result: CrawlResult, still_failed: List[str]) -> None:
    """
    Print the crawl summary.

    Args:
        result: CrawlResult of the discovery pass
        still_failed: URLs still missing after all passes
    """
    archive = result.archive
    print("\n" + "=" * 60)
    print_success("CRAWL SUMMARY")
    print("=" * 60)
    print(f"  Files archived:    {len(archive)}")
    print(f"  Archive size:      {format_bytes(archive.total_size)}")
    print(f"  Internal links:    {len(result.internal_links)}")
    print(f"  Failed downloads:  {len(still_failed)}")
    print(f"  Duration:          {result.duration_seconds:.1f} seconds")

    if still_failed:
        print("")
        print("  Missing files:")
        for url in still_failed[:20]:
            print(f"    {url}")
        if len(still_failed) > 20:
            print(f"    ... and {len(still_failed) - 20} more")

    print("=" * 60 + "\n")


def write_network_log(network_log: NetworkLog, path: str) -> None:
    """Write the network log as JSON."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(network_log.to_list(), f, indent=2, ensure_ascii=False)


async def run_pipeline(args: argparse.Namespace) -> int:
    """
    Crawl, optionally retry, and write the archive.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    url = prepare_root_url(args.url)
    options = build_request_options(args)
    mode = ConcurrencyMode(args.mode)
    warnings: List[CrawlWarning] = []

    if not args.quiet:
        print_info(f"Target URL: {url}")
        print_info(f"Output: {args.output}")
        print_info(f"Mode: {mode.value}" + (f" ({args.workers} workers)" if mode is ConcurrencyMode.PARALLEL else ""))

    progress = create_progress()
    eta = EtaEstimator()

    async with ProxyTransport(proxies=build_proxy_chain(args), timeout=args.timeout) as transport:
        cache = FetchCache(transport)
        crawler = SourceCrawler(
            transport=transport,
            cache=cache,
            concurrency_mode=mode,
            pool_size=args.workers,
            max_resources=args.max_resources
        )

        with progress:
            task = progress.add_task("Initializing...", total=1, eta="", visible=not args.quiet)

            def on_progress(update: ProgressUpdate) -> None:
                progress.update(
                    task,
                    description=update.message[:60],
                    completed=update.downloaded,
                    total=max(update.total, 1),
                    eta=eta.describe(update.downloaded, update.total)
                )

            eta.start()
            result = await crawler.crawl(
                url,
                options,
                on_progress=on_progress,
                on_warning=warnings.append,
                concurrency_mode=mode
            )

        archive: Archive = result.archive
        still_failed = list(result.failed_urls)

        if not args.quiet and warnings:
            print_warning(f"{len(warnings)} resource(s) failed to download")

        if still_failed and args.retry:
            engine = RecoveryEngine(cache, resolver=build_resolver(), options=options)

            retry_progress = create_progress()
            with retry_progress:
                task = retry_progress.add_task("Retrying...", total=len(still_failed), eta="", visible=not args.quiet)

                def on_retry_progress(update: ProgressUpdate) -> None:
                    retry_progress.update(
                        task,
                        description=update.message[:60],
                        completed=update.downloaded,
                        total=max(update.total, 1)
                    )

                if args.inline:
                    retry_result = await engine.retry_as_data_uri(
                        still_failed, archive, result.network_log, on_retry_progress
                    )
                else:
                    retry_result = await engine.retry(
                        still_failed, archive, result.network_log, on_retry_progress
                    )

            recovered = len(still_failed) - len(retry_result.still_failed_urls)
            still_failed = retry_result.still_failed_urls
            if not args.quiet:
                print_info(f"Recovered {recovered} file(s) on retry")

    archive_file = archive.save(args.output, site_archive_name(url))

    if args.network_log:
        write_network_log(result.network_log, args.network_log)
        if not args.quiet:
            print_info(f"Network log written to {args.network_log}")

    if not args.quiet:
        print_summary(result, still_failed)

    print_success(f"Sources archived to: {archive_file}")
    return 0


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the website source tool.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_arguments(argv)
    load_dotenv()

    log_level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    setup_logger(level=log_level, log_file=args.log_file)

    if not args.quiet:
        print_banner()

    try:
        return await run_pipeline(args)
    except KeyboardInterrupt:
        print_error("\nCrawl interrupted by user")
        return 1
    except RootFetchError as e:
        print_error(str(e))
        return 1
    except ValueError as e:
        print_error(f"Invalid input: {e}")
        return 1
    except Exception as e:
        print_error(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def run() -> None:
    """Entry point wrapper for running as module."""
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    run()
