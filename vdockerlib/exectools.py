"""
This module contains a set of functions for managing shell commands
consistently. It adds some logging and some additional capabilties to the
ordinary subprocess behaviors.
"""

import os
import shlex
import subprocess
import sys
import threading
from typing import List, Optional, Sequence, TextIO, Tuple

from vdockerlib import constants, logutil
from vdockerlib.exceptions import CommandError
from vdockerlib.progress import ProgressIndicator
from vdockerlib.util import timer

SUCCESS = 0

logger = logutil.getLogger(__name__)

cmd_counter_lock = threading.Lock()
cmd_counter = 0  # Increments atomically to help search logs for command start/stop


def cmd_info(cmd_list: List[str], cwd: Optional[str] = None) -> str:
    """
    :return: A unique, searchable description of one command invocation
    """
    global cmd_counter, cmd_counter_lock

    with cmd_counter_lock:
        my_id = cmd_counter
        cmd_counter = cmd_counter + 1

    return f'${my_id}: {shlex.join(cmd_list)} - [cwd={cwd or os.getcwd()}]'


def cmd_gather(cmd_list: List[str], cwd: Optional[str] = None, info: Optional[str] = None) -> Tuple[int, str, str]:
    """
    Runs a command and returns rc,stdout,stderr as a tuple.

    Logs only at DEBUG: callers may be drawing on the console while this runs.

    :param cmd_list: The command and arguments to execute
    :param cwd: Directory to run the command in; the current directory if None
    :param info: Description of the command for log lines; built from cmd_list if None
    :return: (rc,stdout,stderr)
    """
    info = info or cmd_info(cmd_list, cwd)
    try:
        proc = subprocess.Popen(
            cmd_list, cwd=cwd or os.getcwd(),
            stdout=subprocess.PIPE, stderr=subprocess.PIPE, stdin=subprocess.DEVNULL)
    except OSError as exc:
        description = "{}: Errored:\nException:\n{}\nIs {} installed?".format(info, exc, cmd_list[0])
        logger.debug(description)
        return exc.errno or 1, "", description

    out, err = proc.communicate()
    rc = proc.returncode

    # We read in bytes representing utf-8 output; decode so that python recognizes them as unicode strings
    out = out.decode('utf-8', errors='replace')
    err = err.decode('utf-8', errors='replace')

    log_output_stdout = out if len(out) <= 200 else f'{out[:200]}\n..truncated..'
    if rc:
        logger.debug(
            "{}: Exited with error: {}\nstdout>>{}<<\nstderr>>{}<<\n".
            format(info, rc, log_output_stdout, err))
    else:
        logger.debug(
            "{}: Exited with: {}\nstdout>>{}<<\nstderr>>{}<<\n".
            format(info, rc, log_output_stdout, err))

    return rc, out, err
class CommandRunner:
    """
    Runs one external command at a time, blocking the caller, with a progress
    indicator on the console for as long as the command runs.
    """

    def __init__(self, cwd: Optional[str] = None, dry_run: bool = False, show_progress: bool = True,
                 interval: float = constants.PROGRESS_INTERVAL, stream: Optional[TextIO] = None):
        self.cwd = cwd
        self.dry_run = dry_run
        self.show_progress = show_progress
        self.interval = interval
        self.stream = stream if stream is not None else sys.stderr

    def new_indicator(self, cmd_list: List[str]) -> ProgressIndicator:
        enabled = self.show_progress and _isatty(self.stream)
        return ProgressIndicator(message=cmd_list[0], interval=self.interval, stream=self.stream, enabled=enabled)

    def run(self, cmd: Sequence[str]) -> str:
        """
        Run a command to completion. There is no timeout.
        :param cmd: The command tokens, e.g. ["docker", "push", "repo:tag"]
        :return: stdout of the command
        :raises CommandError: if the command exits non-zero or cannot be launched
        """
        cmd_list = [str(c) for c in cmd]
        if not cmd_list:
            raise ValueError("Refusing to run an empty command")
        if self.dry_run:
            logger.info("[dry-run] Would run: %s", shlex.join(cmd_list))
            return ""

        info = cmd_info(cmd_list, self.cwd)
        indicator = self.new_indicator(cmd_list)
        # INFO lines go out before the indicator draws and after it has cleared its line
        with timer(logger.info, f'{info}: Executed'):
            logger.info(f'{info}: Executing')
            handle = indicator.start()
            try:
                rc, out, err = cmd_gather(cmd_list, cwd=self.cwd, info=info)
            finally:
                indicator.stop(handle)

        if rc != SUCCESS:
            raise CommandError(shlex.join(cmd_list), rc, out + err)
        return out


def _isatty(stream) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False
