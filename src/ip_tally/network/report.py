"""
Report builder: filter, sort and cut the address tally, optionally look up
hostnames, and print one templated line per address.
"""

import socket
import sys
from ipaddress import ip_address
from string import Formatter

from ip_tally.errors import ReportError, TemplateError
from ip_tally.utils.logger import setup_logger

logger = setup_logger(__name__)

NUMERIC_TEMPLATE = "{cnt} {ip}"
RESOLVING_TEMPLATE = "{cnt} {host} ({ip})"
TEMPLATE_FIELDS = ("cnt", "ip", "host")


def default_template(numeric):
    return NUMERIC_TEMPLATE if numeric else RESOLVING_TEMPLATE


def _check_fields(template, numeric):
    try:
        parsed = list(Formatter().parse(template))
    except ValueError as e:
        raise TemplateError(f"Malformed format template {template!r}: {e}") from e

    for _literal, field_name, format_spec, _conversion in parsed:
        if field_name is None:
            continue
        if field_name not in TEMPLATE_FIELDS:
            known = ", ".join("{" + name + "}" for name in TEMPLATE_FIELDS)
            raise TemplateError(
                f"Unknown placeholder {{{field_name}}} in format template {template!r}, "
                f"expected one of {known}"
            )
        if field_name == "host" and numeric:
            raise TemplateError("You cannot use {host} in the format string and pass --numeric at the same time")
        # Format specs may nest placeholders, e.g. {ip:>{cnt}}
        if format_spec and "{" in format_spec:
            _check_fields(format_spec, numeric)


def validate_template(template, numeric):
    """
    Reject a template that could never render.

    Only the named placeholders {cnt}, {ip} and {host} are accepted, and
    {host} only when hostnames are being resolved. Raises TemplateError.
    """
    _check_fields(template, numeric)


def select_entries(table, max_results=None, threshold=None):
    """
    Return the (address, count) pairs that make it into the report.

    Entries with count <= threshold are dropped, the rest are sorted by
    ascending count (ties by address), and only the max_results entries with
    the highest counts are kept, still in ascending order.
    """
    entries = table.items()
    if threshold is not None:
        entries = [(address, count) for address, count in entries if count > threshold]
    entries = sorted(entries, key=lambda entry: (entry[1], entry[0]))
    if max_results is not None:
        entries = entries[-max_results:] if max_results > 0 else []
    logger.debug(f"Selected {len(entries)} of {len(table)} addresses (threshold={threshold}, max_results={max_results})")
    return entries


def resolve_host(address):
    """Reverse lookup of an address string; any failure is a ReportError"""
    try:
        ip = ip_address(address)
    except ValueError as e:
        raise ReportError(f"Could not parse IP: {address}") from e

    try:
        hostname, _aliases, _addresses = socket.gethostbyaddr(str(ip))
    except OSError as e:
        raise ReportError(f"Could not lookup host for IP {address}: {e}") from e

    logger.debug(f"Resolved {address} to {hostname}")
    return hostname


def render(table, max_results=None, numeric=False, threshold=None, template=None, out=None):
    """
    Print the report for table, one line per selected address.

    The template is checked again here for callers that skip Settings.
    Lines already written stay written if a later lookup fails. Returns the
    number of lines written.
    """
    if out is None:
        out = sys.stdout
    if template is None:
        template = default_template(numeric)
    validate_template(template, numeric)

    entries = select_entries(table, max_results, threshold)
    for address, count in entries:
        fields = {"cnt": count, "ip": address}
        if not numeric:
            fields["host"] = resolve_host(address)
        try:
            line = template.format(**fields)
        except (ValueError, KeyError, IndexError) as e:
            raise ReportError(f"Error while formatting record for {address}: {e}") from e
        print(line, file=out)
    return len(entries)
