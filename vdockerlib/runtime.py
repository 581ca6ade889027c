import atexit
import logging
import os
import shutil
import tempfile
from typing import Any, Dict, Optional

import click
import requests
import yaml

from vdockerlib import cli_opts, logutil, util
from vdockerlib.exceptions import VdockerFatalError
from vdockerlib.exectools import CommandRunner
from vdockerlib.manifests import ManifestReconciler
from vdockerlib.orchestrator import Orchestrator
from vdockerlib.registry import RegistryClient
from vdockerlib.releases import VersionResolver


def remove_tmp_working_dir(runtime):
    if runtime.remove_tmp_working_dir:
        shutil.rmtree(runtime.working_dir, ignore_errors=True)
    else:
        click.echo("Temporary working directory preserved by operation: %s" % runtime.working_dir)


def load_settings(path: Optional[str], required: bool = False) -> Dict[str, Any]:
    """
    Read settings.yaml.
    :param path: File to read
    :param required: Raise if the file does not exist (it was named explicitly)
    :return: The settings, {} when the file is absent or empty
    """
    if not path or not os.path.isfile(path):
        if required:
            raise VdockerFatalError(f"Settings file {path} does not exist")
        return {}
    with open(path, 'r') as f:
        try:
            settings = yaml.safe_load(f)
        except yaml.YAMLError as ex:
            raise VdockerFatalError(f"Unable to parse settings file {path}: {ex}")
    if settings is None:
        return {}
    if not isinstance(settings, dict):
        raise VdockerFatalError(f"Settings file {path} must contain a mapping")
    unknown = set(settings) - set(cli_opts.CLI_OPTS)
    if unknown:
        raise VdockerFatalError(f"Unknown setting(s) in {path}: {', '.join(sorted(unknown))}")
    return settings


class Runtime(object):
    """
    Holds the resolved configuration of one invocation and wires up the
    registry, release source, command runner, manifest reconciler and orchestrator.

    A setting is taken from, in order: keyword arguments (command line),
    VDOCKER_* environment variables, settings.yaml, defaults in constants.
    """

    def __init__(self, config_path: Optional[str] = None, debug: bool = False, quiet: bool = False,
                 dry_run: bool = False, environ: Optional[Dict[str, str]] = None, **kwargs):
        self.debug = debug
        self.quiet = quiet
        self.dry_run = dry_run
        self.initialized = False
        self.remove_tmp_working_dir = False
        self.logger = None
        self.debug_log_path = None

        environ = os.environ if environ is None else environ
        if config_path:
            settings = load_settings(config_path, required=True)
        else:
            config_path = cli_opts.default_config_path()
            settings = load_settings(config_path)
        self.config_path = config_path

        for key in cli_opts.CLI_OPTS:
            setattr(self, key, self._resolve(key, kwargs.get(key), environ, settings))

        if not self.arch:
            self.arch = util.local_arch()
        if not self.repository:
            raise VdockerFatalError("A repository must be configured")
        if self.page_size <= 0 or self.max_pages <= 0:
            raise VdockerFatalError("page_size and max_pages must be positive")
        if self.progress_interval <= 0:
            raise VdockerFatalError("progress_interval must be positive")
        for arch in self.arches + [self.arch]:
            if not util.is_valid_tag_component(arch) or '-' in arch:
                raise VdockerFatalError(f"Invalid architecture name: {arch}")

        self.registry = None
        self.resolver = None
        self.runner = None
        self.reconciler = None
        self.orchestrator = None

    @staticmethod
    def _resolve(key: str, cli_value: Any, environ, settings: Dict[str, Any]) -> Any:
        if cli_value not in (None, (), []):
            value = cli_value
        elif cli_opts.CLI_ENV_VARS.get(key) in environ:
            value = environ[cli_opts.CLI_ENV_VARS[key]]
        elif settings.get(key) is not None:
            value = settings[key]
        else:
            value = cli_opts.CLI_DEFAULTS.get(key)

        try:
            if value is not None and key in cli_opts.INT_OPTS:
                value = int(value)
            elif value is not None and key in cli_opts.FLOAT_OPTS:
                value = float(value)
        except (TypeError, ValueError):
            raise VdockerFatalError(f"Setting {key} expects a number, got {value!r}")
        if key in cli_opts.LIST_OPTS:
            if isinstance(value, str):
                value = [value]
            value = util.flatten_comma_list(str(v) for v in value or [])
        return value

    @property
    def tags_url(self) -> str:
        return self.registry_url.format(repository=self.repository)

    def initialize(self):
        if self.initialized:
            return

        if self.working_dir:
            self.working_dir = os.path.abspath(os.path.expanduser(self.working_dir))
            os.makedirs(self.working_dir, exist_ok=True)
        else:
            self.working_dir = tempfile.mkdtemp(prefix="vdocker-working-")
            self.remove_tmp_working_dir = True
            atexit.register(remove_tmp_working_dir, self)

        self.initialize_logging()

        session = requests.Session()
        self.registry = RegistryClient(self.tags_url, page_size=self.page_size, max_pages=self.max_pages,
                                       session=session)
        self.resolver = VersionResolver(self.releases_url, session=session)
        self.runner = CommandRunner(dry_run=self.dry_run, show_progress=not self.quiet,
                                    interval=self.progress_interval)
        self.reconciler = ManifestReconciler(self.registry, self.runner, self.repository, docker=self.docker)
        self.orchestrator = Orchestrator(self.registry, self.resolver, self.reconciler, self.runner,
                                         repository=self.repository, arch=self.arch, arches=self.arches,
                                         build_context=self.build_context, docker=self.docker)

        self.logger.debug("Repository %s, local architecture %s, manifest architectures %s",
                          self.repository, self.arch, ", ".join(self.arches))
        self.initialized = True

    def initialize_logging(self):

        if self.initialized:
            return

        # Three flags control the output modes of the command:
        # --debug increases the log level to produce more detailed internal
        #         behavior logging
        # --quiet opposes debug
        if self.debug:
            log_level = logging.DEBUG
        elif self.quiet:
            log_level = logging.WARN
        else:
            log_level = logging.INFO

        default_log_formatter = logging.Formatter('%(asctime)s %(levelname)s %(message)s')

        # Get a reference to the logger for vdocker
        self.logger = logutil.getLogger()
        self.logger.propagate = False

        # levels will be set at the handler level. Make sure master level is low.
        self.logger.setLevel(logging.DEBUG)
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)

        main_stream_handler = logging.StreamHandler()
        main_stream_handler.setFormatter(default_log_formatter)
        main_stream_handler.setLevel(log_level)
        self.logger.addHandler(main_stream_handler)

        self.debug_log_path = os.path.join(self.working_dir, "debug.log")
        debug_log_handler = logging.FileHandler(self.debug_log_path)
        # Add thread information for debug log
        debug_log_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s (%(thread)d) %(message)s'))
        debug_log_handler.setLevel(logging.DEBUG)
        self.logger.addHandler(debug_log_handler)
