"""
Run configuration, merged from the config file and the command line and
checked once before any input is opened.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from ip_tally.errors import ConfigError
from ip_tally.network.report import default_template, validate_template
from ip_tally.network.scanner import compile_pattern


@dataclass(frozen=True)
class Settings:
    pattern: re.Pattern
    template: str
    files: Tuple[str, ...] = ()
    key: int = 1
    max_results: Optional[int] = None
    threshold: Optional[int] = None
    numeric: bool = False
    pedantic: bool = False
    fixed_ips: bool = False


def _as_int(name, value, minimum=None):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be {minimum} or greater, got {value}")
    return value


def _as_bool(name, value):
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false, got {value!r}")
    return value


def _as_str(name, value):
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"{name} must be a string, got {value!r}")
    return value


def build_settings(options, files=()):
    """Validate merged option values into Settings; raises ConfigError"""
    numeric = _as_bool('numeric', options.get('numeric'))

    template = _as_str('format', options.get('format'))
    if template is None:
        template = default_template(numeric)
    validate_template(template, numeric)

    key = _as_int('key', options.get('key'), minimum=1)

    return Settings(
        pattern=compile_pattern(_as_str('pattern', options.get('pattern'))),
        template=template,
        files=tuple(files),
        key=1 if key is None else key,
        max_results=_as_int('max_results', options.get('max_results'), minimum=1),
        threshold=_as_int('threshold', options.get('threshold')),
        numeric=numeric,
        pedantic=_as_bool('pedantic', options.get('pedantic')),
        fixed_ips=_as_bool('fixed_ips', options.get('fixed_ips')),
    )
