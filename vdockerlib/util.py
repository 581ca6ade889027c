import os
import platform
import re
from contextlib import contextmanager
from datetime import datetime
from inspect import getframeinfo, stack
from typing import Iterable, List, Optional, Tuple

import click

# Valid characters of a Docker tag; a version or architecture must fit in one
TAG_COMPONENT_RE = re.compile(r'^[A-Za-z0-9_][A-Za-z0-9_.-]*$')

# platform.machine() names that differ from the architecture names used in our tags
_MACHINE_ALIASES = {
    'amd64': 'x86_64',
    'arm64': 'aarch64',
}


def stringify(val):
    """
    Accepts either str or bytes and returns a str
    """
    try:
        val = val.decode('utf-8')
    except (UnicodeDecodeError, AttributeError):
        pass
    return val


def red_print(msg, file=None):
    """Print out a message in red text, like for error messages"""
    click.secho(stringify(msg), nl=True, bold=False, fg='red', file=file)


def green_print(msg, file=None):
    """Print out a message in green text"""
    click.secho(stringify(msg), nl=True, bold=False, fg='green', file=file)


def yellow_print(msg, file=None):
    """Print out a message in yellow text"""
    click.secho(stringify(msg), nl=True, bold=False, fg='yellow', file=file)


@contextmanager
def timer(out_method, msg):
    caller = getframeinfo(stack()[2][0])  # Line that called this method
    start_time = datetime.now()
    try:
        yield
    finally:
        time_elapsed = datetime.now() - start_time
        entry = f'Time elapsed (hh:mm:ss.ms) {time_elapsed} in {os.path.basename(caller.filename)}:{caller.lineno} : {msg}'
        out_method(entry)


def compose_tag(version: str, arch: str) -> str:
    """
    :return: The per-architecture tag name for a version, e.g. 0.4.3-x86_64
    """
    return f'{version}-{arch}'


def split_tag(tag: str) -> Optional[Tuple[str, str]]:
    """
    Splits a per-architecture tag into (version, arch).

    Architecture names never contain '-' while versions may (0.4.0-rc1-x86_64),
    so the split happens at the last hyphen.
    :param tag: A tag name like 0.4.3-x86_64
    :return: (version, arch), or None if the tag does not carry an architecture
    """
    version, sep, arch = tag.rpartition('-')
    if not sep or not version or not arch:
        return None
    return version, arch


def is_valid_tag_component(value: str) -> bool:
    return bool(TAG_COMPONENT_RE.match(value))


def local_arch() -> str:
    """
    :return: The CPU architecture of this host, named the way our tags name it
    """
    machine = platform.machine().lower()
    return _MACHINE_ALIASES.get(machine, machine)


def flatten_comma_list(values: Iterable[str]) -> List[str]:
    """
    Turns ('x86_64,aarch64', 'ppc64le') into ['x86_64', 'aarch64', 'ppc64le'],
    dropping blanks and duplicates but keeping the original order.
    """
    result = []
    for value in values:
        for item in value.split(','):
            item = item.strip()
            if item and item not in result:
                result.append(item)
    return result
