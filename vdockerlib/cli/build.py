from typing import Tuple

import click

from vdockerlib import util
from vdockerlib.cli import cli, pass_runtime
from vdockerlib.runtime import Runtime


def parse_build_args(args: Tuple[str, ...]):
    """
    Interpret the positional arguments of the build command.
    :return: (versions, count); both None means "the latest release"
    :raises click.BadArgumentUsage: for anything that is neither a positive count nor a list of versions
    """
    if not args:
        return None, None
    if len(args) == 1 and args[0].isascii() and args[0].lstrip('-').isdigit():
        count = int(args[0])
        if count <= 0:
            raise click.BadArgumentUsage(f"Number of releases must be positive, got {args[0]}")
        return None, count
    for arg in args:
        if arg.isascii() and arg.isdigit():
            raise click.BadArgumentUsage(f"A release count ({arg}) cannot be combined with other arguments")
        if not util.is_valid_tag_component(arg):
            raise click.BadArgumentUsage(f"Unrecognized argument: {arg}")
    return list(args), None


@cli.command("build", short_help="Build, push and reconcile release images (default command)")
@click.argument("args", nargs=-1, metavar="[N | VERSION...]")
@pass_runtime
@click.pass_context
def build(ctx, runtime: Runtime, args: Tuple[str, ...]):
    """
    Build and push images of upstream releases for this host's architecture,
    then (re)create the multi-architecture manifest of every version handled.

    \b
    Without arguments the latest release is built and also tagged "latest".
    With a number N the N most recent releases are built.
    Otherwise each argument is a release tag, built in the order given.

    Versions already present in the registry for this architecture are skipped.
    Local image data is pruned at the end of every run.
    """
    versions, count = parse_build_args(args)
    runtime.initialize()

    outcomes = runtime.orchestrator.run(versions=versions, count=count)

    for outcome in outcomes:
        if outcome.skipped:
            util.yellow_print(f"{outcome.version}: already in the registry for {runtime.arch}")
        elif outcome.handled:
            util.green_print(f"{outcome.version}: built and pushed for {runtime.arch}")
        else:
            util.red_print(f"{outcome.version}: not handled")

    # Only the latest-release run reports per-version status; fatal errors abort before this point
    if versions is None and count is None and outcomes:
        ctx.exit(outcomes[0].status_code)
