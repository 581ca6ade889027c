import sys

import click

from vdockerlib import version
from vdockerlib.runtime import Runtime

pass_runtime = click.make_pass_decorator(Runtime)
context_settings = dict(help_option_names=['-h', '--help'])
DEFAULT_COMMAND = 'build'


def print_version(ctx, param, value):
    if not value or ctx.resilient_parsing:
        return
    click.echo('vdocker v{}'.format(version()))
    click.echo('Python v{}'.format(sys.version))
    ctx.exit()


class DefaultCommandGroup(click.Group):
    """
    A group that hands any argument which is not a command name to the default command,
    so `vdocker 0.4.3` means `vdocker build 0.4.3`.
    """

    aliases = {'manifest': 'manifests'}

    def get_command(self, ctx, cmd_name):
        cmd_name = self.aliases.get(cmd_name, cmd_name)
        if cmd_name not in self.commands:
            ctx.meta['vdocker.default_arg0'] = cmd_name
            cmd_name = DEFAULT_COMMAND
        return super().get_command(ctx, cmd_name)

    def resolve_command(self, ctx, args):
        cmd_name, cmd, args = super().resolve_command(ctx, args)
        arg0 = ctx.meta.pop('vdocker.default_arg0', None)
        if arg0 is not None:
            args.insert(0, arg0)
        return cmd.name if cmd else cmd_name, cmd, args


# ============================================================================
# GLOBAL OPTIONS: parameters for all commands
# ============================================================================
@click.group(cls=DefaultCommandGroup, context_settings=context_settings, invoke_without_command=True)
@click.option('--version', is_flag=True, callback=print_version,
              expose_value=False, is_eager=True)
@click.option("--config", "config_path", metavar='PATH', default=None,
              help="settings.yaml to read instead of ~/.config/vdocker/settings.yaml. Env var: VDOCKER_CONFIG_DIR (directory)")
@click.option("--working-dir", metavar='PATH', default=None,
              help="Existing directory in which debug.log is written.\n Env var: VDOCKER_WORKING_DIR")
@click.option("--repository", metavar='NAMESPACE/NAME', default=None,
              help="Image repository to build into and reconcile. Env var: VDOCKER_REPOSITORY")
@click.option("--arch", metavar='ARCH', default=None,
              help="Override the detected architecture of this host. Env var: VDOCKER_ARCH")
@click.option("-a", "--arches", default=[], metavar='ARCH', multiple=True,
              help="Architectures combined into each manifest. Can be comma delimited list. Env var: VDOCKER_ARCHES")
@click.option("--build-context", metavar='PATH', default=None,
              help="Directory containing the Dockerfile. Env var: VDOCKER_BUILD_CONTEXT")
@click.option("--docker", metavar='PATH', default=None,
              help="Container tool to run. Env var: VDOCKER_DOCKER")
@click.option("--max-pages", metavar='NUM', type=int, default=None,
              help="Registry tag listing pages to read (25 tags each). Env var: VDOCKER_MAX_PAGES")
@click.option("--dry-run", default=False, is_flag=True,
              help="Log the docker commands instead of running them")
@click.option("--quiet", "-q", default=False, is_flag=True, help="Suppress non-critical output")
@click.option('--debug', default=False, is_flag=True, help='Show debug output on console.')
@click.pass_context
def cli(ctx, **kwargs):
    """
    Build, push and reconcile multi-architecture images of V releases.

    \b
    vdocker                 build the latest release and tag it latest
    vdocker N               build the N most recent releases
    vdocker VERSION...      build the given release(s)
    vdocker manifests       only create missing multi-arch manifests
    """
    ctx.obj = Runtime(**kwargs)
    if ctx.invoked_subcommand is None:
        ctx.invoke(ctx.command.get_command(ctx, DEFAULT_COMMAND))
