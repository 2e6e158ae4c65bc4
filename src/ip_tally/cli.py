import argparse
import os
import sys
from importlib.metadata import PackageNotFoundError, version

from colorama import Fore, Style

from ip_tally.errors import ConfigError, IpTallyError
from ip_tally.network.report import render
from ip_tally.network.scanner import scan_sources
from ip_tally.utils.config_loader import CONFIG_KEYS, load_config
from ip_tally.utils.logger import set_verbosity, setup_logger
from ip_tally.utils.settings import build_settings

logger = setup_logger(__name__)

EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def _version():
    try:
        return version("ip-tally")
    except PackageNotFoundError:
        return "unknown"


def build_parser():
    parser = argparse.ArgumentParser(
        prog="ip-tally",
        description="Count IP addresses in log files and print them sorted by number of occurrences",
    )
    parser.add_argument("files", nargs="*", help="Files to scan for IPs, otherwise stdin is used ('-' also means stdin)")
    parser.add_argument("-m", "--max-results", type=int, help="Limit the number of results to show")
    parser.add_argument("-n", "--numeric", action=argparse.BooleanOptionalAction, default=None, help="Do not do any host lookups")
    parser.add_argument("-k", "--key", type=int, help="If multiple IPs per line are found, use the Nth hit, starts at 1 (default: 1)")
    parser.add_argument("-t", "--threshold", type=int, help="Only show IPs seen more than this many times")
    parser.add_argument("--pedantic", action=argparse.BooleanOptionalAction, default=None, help="Bail out as soon as we hit a line without any IP in it")
    parser.add_argument("-p", "--pattern", help="Provide a custom regex pattern to match the IP")
    parser.add_argument("--fixed-ips", action=argparse.BooleanOptionalAction, default=None, help="Assume the line contains a single IP without anything else in it")
    parser.add_argument(
        "-f", "--format",
        help="Custom format used once per IP, may contain {host}, {ip} and {cnt}",
    )
    parser.add_argument("-c", "--config", help="YAML file with option defaults (default: $IP_TALLY_CONFIG or ~/.config/ip-tally/config.yaml)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log progress to stderr, repeat for debug output")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {_version()}")
    return parser


def merge_options(config, args):
    """Command line values win over config file values"""
    options = dict(config)
    for name in CONFIG_KEYS:
        value = getattr(args, name, None)
        if value is not None:
            options[name] = value
    return options


def _report_error(error):
    print(f"{Fore.RED}error:{Style.RESET_ALL} {error}", file=sys.stderr)


def run(args):
    """Scan every source, then print the report"""
    config = load_config(args.config)
    settings = build_settings(merge_options(config, args), files=args.files)

    table = scan_sources(
        list(settings.files),
        settings.pattern,
        key_index=settings.key,
        pedantic=settings.pedantic,
        fixed_mode=settings.fixed_ips,
    )
    render(
        table,
        max_results=settings.max_results,
        numeric=settings.numeric,
        threshold=settings.threshold,
        template=settings.template,
    )


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    set_verbosity(args.verbose)

    try:
        run(args)
    except ConfigError as e:
        logger.debug("Configuration rejected", exc_info=True)
        _report_error(e)
        return EXIT_CONFIG
    except IpTallyError as e:
        logger.debug("Run aborted", exc_info=True)
        _report_error(e)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("Interrupted by user.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except BrokenPipeError:
        # Reader went away (e.g. `| head`); silence the flush at interpreter exit
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())
