import sys

import click

from vdockerlib.cli import cli
from vdockerlib.cli.build import build
from vdockerlib.cli.manifests import manifests
from vdockerlib.exceptions import VdockerFatalError
from vdockerlib.util import red_print


def main(args=None):
    try:
        rc = cli.main(args=args, prog_name='vdocker', standalone_mode=False)
    except click.ClickException as ex:
        # Usage errors exit 1 like any other unrecognized invocation
        ex.show()
        sys.exit(1)
    except click.exceptions.Abort:
        red_print('Aborted!')
        sys.exit(1)
    except VdockerFatalError as ex:
        # Allow capturing actual tool errors and print them
        # nicely instead of a gross stack-trace.
        # All internal errors that should simply cause the app
        # to exit with an error code should use VdockerFatalError
        red_print('\nvdocker Failed With Error:\n' + str(ex))
        sys.exit(1)
    sys.exit(rc or 0)


if __name__ == '__main__':
    main()
