"""Components of the yadex directory index server."""

from .config import Config, ConfigError, load_config
from .errors import InternalError, NotFound, RenderFailure, YadexError, error_middleware
from .listing import DirectoryEntryView, IndexRenderModel, list_directory
from .sandbox import SandboxError, confine
from .template_store import CompiledTemplates, LoadError, RenderError

__all__ = [
    'CompiledTemplates',
    'Config',
    'ConfigError',
    'DirectoryEntryView',
    'IndexRenderModel',
    'InternalError',
    'LoadError',
    'NotFound',
    'RenderError',
    'RenderFailure',
    'SandboxError',
    'YadexError',
    'confine',
    'error_middleware',
    'list_directory',
    'load_config',
]
