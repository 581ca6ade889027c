import os

from vdockerlib import constants

CLI_OPTS = {
    'working_dir': {
        'env': constants.WORKING_DIR_ENV,
        'help': 'Persistent working directory to use (debug.log is written here)',
    },
    'repository': {
        'env': 'VDOCKER_REPOSITORY',
        'help': 'Image repository on the registry, e.g. thevlang/vlang',
        'default': constants.DEFAULT_REPOSITORY,
    },
    'registry_url': {
        'env': 'VDOCKER_REGISTRY_URL',
        'help': 'Tag listing API; {repository} is replaced with the repository name',
        'default': constants.DEFAULT_REGISTRY_URL,
    },
    'releases_url': {
        'env': 'VDOCKER_RELEASES_URL',
        'help': 'Release API of the upstream project',
        'default': constants.DEFAULT_RELEASES_URL,
    },
    'arches': {
        'env': 'VDOCKER_ARCHES',
        'help': 'Architectures combined into each manifest (list or comma delimited)',
        'default': constants.DEFAULT_ARCHES,
    },
    'arch': {
        'env': 'VDOCKER_ARCH',
        'help': 'Architecture of this host; detected when unset',
    },
    'build_context': {
        'env': 'VDOCKER_BUILD_CONTEXT',
        'help': 'Directory containing the Dockerfile',
        'default': constants.DEFAULT_BUILD_CONTEXT,
    },
    'docker': {
        'env': 'VDOCKER_DOCKER',
        'help': 'Container tool used to build, push and create manifests',
        'default': constants.DEFAULT_DOCKER,
    },
    'page_size': {
        'env': 'VDOCKER_PAGE_SIZE',
        'help': 'Tags requested per registry listing page',
        'default': constants.REGISTRY_PAGE_SIZE,
    },
    'max_pages': {
        'env': 'VDOCKER_MAX_PAGES',
        'help': 'Registry listing pages to read',
        'default': constants.REGISTRY_MAX_PAGES,
    },
    'progress_interval': {
        'env': 'VDOCKER_PROGRESS_INTERVAL',
        'help': 'Seconds between progress indicator frames',
        'default': constants.PROGRESS_INTERVAL,
    },
}

CLI_ENV_VARS = {k: v['env'] for (k, v) in CLI_OPTS.items() if 'env' in v}

CLI_DEFAULTS = {k: v['default'] for (k, v) in CLI_OPTS.items() if 'default' in v}

INT_OPTS = {'page_size', 'max_pages'}
FLOAT_OPTS = {'progress_interval'}
LIST_OPTS = {'arches'}


def default_config_path():
    config_dir = os.environ.get(constants.CONFIG_DIR_ENV) or os.path.join(
        os.environ.get('XDG_CONFIG_HOME') or os.path.expanduser('~/.config'), 'vdocker')
    return os.path.join(config_dir, 'settings.yaml')
