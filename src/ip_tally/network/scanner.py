"""
Line scanner: pull one IP address out of every line of log-like text and
tally how often each distinct address shows up.
"""

import gzip
import re
import sys
import zlib
from collections import Counter
from contextlib import contextmanager
from itertools import islice

from ip_tally.errors import ConfigError, ScanError, SourceError
from ip_tally.utils.logger import setup_logger

logger = setup_logger(__name__)

STDIN_NAME = "<stdin>"
MAPPED_PREFIX = "::ffff:"

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9]?[0-9])"
_IPV4 = rf"{_OCTET}(?:\.{_OCTET}){{3}}"
_HEX = r"[0-9a-f]{1,4}"

_IPV6_FORMS = [
    rf"(?:{_HEX}:){{7}}(?:{_HEX}|:)",
    rf"(?:{_HEX}:){{6}}(?::{_HEX}|{_IPV4}|:)",
    rf"(?:{_HEX}:){{5}}(?:(?::{_HEX}){{1,2}}|:{_IPV4}|:)",
    rf"(?:{_HEX}:){{4}}(?:(?::{_HEX}){{1,3}}|(?::{_HEX})?:{_IPV4}|:)",
    rf"(?:{_HEX}:){{3}}(?:(?::{_HEX}){{1,4}}|(?::{_HEX}){{0,2}}:{_IPV4}|:)",
    rf"(?:{_HEX}:){{2}}(?:(?::{_HEX}){{1,5}}|(?::{_HEX}){{0,3}}:{_IPV4}|:)",
    rf"(?:{_HEX}:){{1}}(?:(?::{_HEX}){{1,6}}|(?::{_HEX}){{0,4}}:{_IPV4}|:)",
    rf":(?:(?::{_HEX}){{1,7}}|(?::{_HEX}){{0,5}}:{_IPV4}|:)",
]

# Alternatives are tried left to right at each position, so the mapped form
# has to win before the generic IPv6 forms get a chance to eat "::ffff".
DEFAULT_PATTERN = "|".join([
    r"::ffff:(?:[0-9]{1,3}\.){3}[0-9]{1,3}",
    r"(?:" + "|".join(_IPV6_FORMS) + r")(?:%\S+)?",
    rf"(?<![0-9]){_IPV4}(?![0-9])",
])


def compile_pattern(pattern=None):
    """Compile a user pattern, or the built-in one when none is given"""
    if pattern is None:
        return re.compile(DEFAULT_PATTERN, re.IGNORECASE)
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"Could not compile regex {pattern!r}: {e}") from e


def extract_candidate(line, pattern, key_index=1, fixed_mode=False):
    """
    Pick the raw address text out of a line.

    In fixed mode the trimmed line is the candidate. Otherwise the
    key_index-th (1-based) match of pattern is used. Returns None when the
    line has no such match.
    """
    if fixed_mode:
        return line.strip()
    match = next(islice(pattern.finditer(line), key_index - 1, None), None)
    if match is None:
        return None
    return match.group(0)


def normalize(candidate):
    """Strip one leading ::ffff: so mapped IPv4 addresses count as plain IPv4"""
    if candidate.startswith(MAPPED_PREFIX):
        return candidate[len(MAPPED_PREFIX):]
    return candidate


def scan(source, table, pattern, key_index=1, pedantic=False, fixed_mode=False, name=STDIN_NAME):
    """
    Count the address of every line in source into table.

    Returns the number of lines read. Raises ScanError on the first line
    without an address when pedantic is set (blank lines in fixed mode are
    always skipped), SourceError if reading fails.
    """
    if key_index < 1:
        raise ConfigError(f"Match index must be 1 or greater, got {key_index}")

    lines = 0
    skipped = 0
    try:
        for line in source:
            lines += 1
            candidate = extract_candidate(line, pattern, key_index, fixed_mode)
            address = normalize(candidate) if candidate else ""
            if not address:
                if pedantic and not fixed_mode:
                    raise ScanError(name, lines, line.rstrip("\r\n"))
                skipped += 1
                continue
            table[address] += 1
    except (OSError, EOFError, zlib.error) as e:
        raise SourceError(name, getattr(e, "strerror", None) or str(e)) from e

    logger.info(f"Scanned {lines} lines from {name} ({skipped} without an address)")
    return lines


@contextmanager
def open_source(path):
    """Open a path for line reading; '-' is stdin and *.gz is decompressed on the fly"""
    if path == "-":
        yield sys.stdin
        return

    try:
        if path.endswith(".gz"):
            stream = gzip.open(path, "rt", encoding="utf-8", errors="replace")
        else:
            stream = open(path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise SourceError(path, e.strerror or str(e)) from e

    with stream:
        yield stream


def scan_sources(paths, pattern, key_index=1, pedantic=False, fixed_mode=False):
    """Scan every path in order into one shared table; no paths means stdin"""
    table = Counter()
    for path in paths or ["-"]:
        name = STDIN_NAME if path == "-" else path
        logger.debug(f"Opening {name}")
        with open_source(path) as source:
            scan(source, table, pattern, key_index, pedantic, fixed_mode, name=name)
    logger.info(f"Found {len(table)} distinct addresses in {sum(table.values())} matches")
    return table
