import click

from vdockerlib import util
from vdockerlib.cli import cli, pass_runtime
from vdockerlib.runtime import Runtime


@cli.command("manifests", short_help="Create every missing multi-architecture manifest (alias: manifest)")
@pass_runtime
@click.pass_context
def manifests(ctx, runtime: Runtime):
    """
    Compare the per-architecture tags in the registry with its manifests and
    create and push a manifest for each version that has none. No images are built.

    Only the most recently updated tags are examined (see --max-pages).
    Exits 1 if any manifest could not be created.
    """
    runtime.initialize()
    try:
        ok = runtime.reconciler.reconcile_all_missing()
    finally:
        runtime.orchestrator.cleanup()

    if ok:
        util.green_print("All manifests are reconciled")
    else:
        util.red_print("Some manifests could not be reconciled; see log for details")
        ctx.exit(1)
