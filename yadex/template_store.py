"""Template loading and rendering for HTML output."""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, KeysView, Mapping

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError

from .config import TemplateConfig

logger = logging.getLogger(__name__)

INDEX = "index"
ERROR = "error"


class LoadError(Exception):
    """A named template could not be loaded at startup."""

    def __init__(self, component: str, message: str):
        super().__init__(f"template {component!r}: {message}")
        self.component = component


class TemplateReadError(LoadError):
    """Reading the template source from disk failed."""

    def __init__(self, component: str, path: Path, cause: OSError):
        super().__init__(component, f"cannot read {path}: {cause}")
        self.path = path
        self.cause = cause


class TemplateCompileError(LoadError):
    """The template source was read but did not compile."""

    def __init__(self, component: str, diagnostic: str):
        super().__init__(component, f"failed to compile: {diagnostic}")
        self.diagnostic = diagnostic


class RenderError(Exception):
    """Rendering a compiled template failed."""

    def __init__(self, name: str, cause: BaseException):
        super().__init__(f"failed to render template {name!r}: {cause}")
        self.name = name
        self.cause = cause


class CompiledTemplates:
    """Read-only set of compiled templates shared by every request.

    Built once at startup; nothing mutates it afterwards, so concurrent
    handlers share one instance without locking.
    """

    def __init__(self, templates: Mapping[str, Template]):
        self._templates = MappingProxyType(dict(templates))

    @classmethod
    def from_config(cls, config_dir: Path, template_config: TemplateConfig) -> "CompiledTemplates":
        """Read and compile the ``index`` and ``error`` templates.

        Args:
            config_dir: Directory the template paths are relative to
            template_config: Paths of the named templates

        Raises:
            TemplateReadError: If a template file cannot be read
            TemplateCompileError: If a template has a syntax error
        """
        environment = Environment(autoescape=True, undefined=StrictUndefined)
        sources = {
            INDEX: config_dir / template_config.index_file,
            ERROR: config_dir / template_config.error_file,
        }

        templates = {}
        for name, path in sources.items():
            try:
                source = path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.error("Template file for %s not readable: %s", name, path)
                raise TemplateReadError(name, path, exc) from exc

            try:
                templates[name] = environment.from_string(source)
            except TemplateSyntaxError as exc:
                raise TemplateCompileError(name, f"line {exc.lineno}: {exc.message}") from exc
            logger.info("Loaded template %s from %s", name, path)

        return cls(templates)

    def names(self) -> KeysView[str]:
        return self._templates.keys()

    def render(self, name: str, data: Mapping[str, Any]) -> str:
        """Render the template registered as ``name`` against ``data``.

        Raises:
            RenderError: If the name is unknown or the template fails
        """
        try:
            template = self._templates[name]
        except KeyError as exc:
            raise RenderError(name, exc) from exc

        try:
            return template.render(data)
        except Exception as exc:
            raise RenderError(name, exc) from exc
