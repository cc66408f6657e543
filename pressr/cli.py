"""Command-line entry point.

Usage:
    pressr --url http://localhost:8000/api/items --requests 500 --concurrency 20
    pressr -u http://localhost:8000/api/items/{id} -m POST -d data.yaml -o json
    pressr -u https://example.com -H "Authorization: Bearer abc" --output-dir reports
"""

import argparse
import asyncio
import sys

from pressr.config import settings
from pressr.engine.dispatcher import create_client
from pressr.engine.errors import ConfigurationError, DataLoadError, PressrError
from pressr.engine.histogram import HistogramSettings
from pressr.engine.models import HttpMethod
from pressr.engine.runner import LoadTestConfig, run_load_test, send_probe
from pressr.engine.template import (
    RequestData,
    RequestTemplate,
    load_request_data,
    parse_header_args,
)
from pressr.report import ReportFormat, ReportOptions, render_report, write_report
from pressr.shared.logging import setup_logging


EXIT_OK = 0
EXIT_PROBE_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_RUN_FAILED = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pressr",
        description="Load testing tool for HTTP APIs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-u", "--url", required=True, help="URL to send requests to.")
    parser.add_argument(
        "-m",
        "--method",
        type=str.upper,
        choices=[m.value for m in HttpMethod],
        default=HttpMethod.GET.value,
        help="HTTP method (default: GET).",
    )
    parser.add_argument(
        "-r",
        "--requests",
        type=int,
        default=settings.default_requests,
        help=f"Number of requests to send (default: {settings.default_requests}).",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=settings.default_concurrency,
        help=f"Maximum requests in flight (default: {settings.default_concurrency}).",
    )
    parser.add_argument(
        "-d",
        "--data-file",
        default=None,
        help="JSON or YAML file with body, headers, params, path_variables and variables.",
    )
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        help='Request header as "key:value"; may be repeated.',
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=settings.default_timeout_seconds,
        help=f"Per-request timeout in seconds (default: {settings.default_timeout_seconds:g}).",
    )
    parser.add_argument(
        "-o",
        "--output",
        choices=[f.value for f in ReportFormat],
        default=ReportFormat.TEXT.value,
        help="Report format (default: text).",
    )
    parser.add_argument("--output-file", default=None, help="Write the report to this file name.")
    parser.add_argument(
        "--output-dir",
        default=None,
        help=f"Directory for written reports (default: {settings.reports_dir}).",
    )
    parser.add_argument(
        "--details", action="store_true", help="Include per-request details in the report."
    )
    parser.add_argument(
        "--skip-probe",
        action="store_true",
        help="Do not send a single test request before the run.",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Log level.")
    return parser


async def async_main(args: argparse.Namespace) -> int:
    data: RequestData | None = None
    try:
        if args.data_file:
            data = load_request_data(args.data_file)
        config = LoadTestConfig(
            url=args.url,
            method=args.method,
            request_count=args.requests,
            concurrency=args.concurrency,
            timeout_seconds=args.timeout,
            headers=parse_header_args(args.header),
        )
    except (ConfigurationError, DataLoadError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    async with create_client(config.timeout_seconds, config.concurrency) as client:
        if not args.skip_probe:
            template = RequestTemplate.from_data(config.url, config.method, config.headers, data)
            probe = await send_probe(client, template)
            if probe.status is None:
                print(f"Test request failed: {probe.error}", file=sys.stderr)
                print("Cannot proceed with load test due to test request failure", file=sys.stderr)
                return EXIT_PROBE_FAILED

        try:
            result = await run_load_test(
                config,
                data,
                client,
                histogram_settings=HistogramSettings.from_settings(settings),
                progress_interval=settings.progress_interval,
            )
        except ConfigurationError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return EXIT_CONFIG_ERROR
        except PressrError as exc:
            print(f"Error: load test aborted: {exc}", file=sys.stderr)
            return EXIT_RUN_FAILED

    options = ReportOptions(
        format=ReportFormat(args.output),
        output_file=args.output_file,
        output_dir=args.output_dir,
        include_details=args.details,
    )
    print(render_report(result, options))
    if args.output_file or args.output_dir:
        path = write_report(result, options, default_dir=settings.reports_dir)
        print(f"Report written to {path}", file=sys.stderr)
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, settings.log_json)
    sys.exit(asyncio.run(async_main(args)))


if __name__ == "__main__":
    main()
