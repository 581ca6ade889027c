import sys
if sys.version_info < (3, 8):
    sys.exit('Sorry, Python < 3.8 is not supported.')

from .runtime import Runtime

__version__ = "0.3.0"


def version():
    return __version__
