# Defaults for the settings a Runtime can be configured with.
# Every value can be overridden in settings.yaml, by a VDOCKER_* env var or on the command line.

DEFAULT_REPOSITORY = "thevlang/vlang"
DEFAULT_RELEASES_URL = "https://api.github.com/repos/vlang/v/releases"
# Formatted with the repository name
DEFAULT_REGISTRY_URL = "https://hub.docker.com/v2/repositories/{repository}/tags"

# The architectures a combined manifest is assembled from when a version is built
DEFAULT_ARCHES = ["x86_64", "aarch64"]

DEFAULT_DOCKER = "docker"
DEFAULT_BUILD_CONTEXT = "."

# Docker Hub serves at most this many tags per listing request we make.
# Only the first page is read unless max_pages is raised.
REGISTRY_PAGE_SIZE = 25
REGISTRY_MAX_PAGES = 1
REGISTRY_ORDERING = "last_updated"

# Any media type containing this marks a manifest (list) rather than a single-arch image
MANIFEST_MEDIA_TYPE_MARKER = "distribution.manifest"

# Floating tag given to the most recent release
LATEST = "latest"

# Build argument consumed by the Dockerfile to select which upstream tag to check out
VERSION_BUILD_ARG = "V_VERSION"

PROGRESS_INTERVAL = 0.5  # seconds between indicator frames

HTTP_TIMEOUT = 60  # seconds; applies to the release source and the registry

# Environment variables that override settings.yaml
CONFIG_DIR_ENV = "VDOCKER_CONFIG_DIR"
WORKING_DIR_ENV = "VDOCKER_WORKING_DIR"
