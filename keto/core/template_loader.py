from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, meta
from jinja2.exceptions import TemplateNotFound

from keto.core.config import PATH_TO_TEMPLATES
from keto.core.utils import setup_logger


class TemplateLoader:
    """Loads the jinja2 templates node payloads are rendered from.

    Templates are grouped in module subfolders of the templates directory.
    Rendering requires a value for every variable the template reads.
    """

    MODULES = ('userdata',)

    def __init__(self, templates_dir: Path | None = None) -> None:
        self._logger = setup_logger('TemplateLoader')
        self._templates_dir = templates_dir or PATH_TO_TEMPLATES

        if not self._templates_dir.is_dir():
            raise FileNotFoundError(f'Templates directory not found at: {self._templates_dir}')

        # output is YAML and shell, never HTML
        self._environment = Environment(
            loader=FileSystemLoader(self._templates_dir),
            autoescape=False,  # noqa: S701
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._variables: dict[str, frozenset[str]] = {}

    def _template_path(self, template_name: str, template_module: str | None) -> str:
        if template_module is None:
            return template_name

        if template_module not in self.MODULES:
            raise ValueError(
                f"Unknown template module '{template_module}', expected one of: {', '.join(self.MODULES)}"
            )

        return f'{template_module}/{template_name}'

    def _load(self, template_path: str) -> Template:
        try:
            return self._environment.get_template(template_path)
        except TemplateNotFound as e:
            self._logger.error(f"Template '{template_path}' not found in {self._templates_dir}")
            raise TemplateNotFound(f"Template '{template_path}' not found in {self._templates_dir}") from e

    def variables(self, template_name: str, template_module: str | None = None) -> frozenset[str]:
        """Names the template reads from its render context."""
        template_path = self._template_path(template_name, template_module)

        if template_path not in self._variables:
            self._load(template_path)
            source = self._environment.loader.get_source(self._environment, template_path)[0]
            self._variables[template_path] = frozenset(
                meta.find_undeclared_variables(self._environment.parse(source))
            )

        return self._variables[template_path]

    def get_template(self, template_name: str, template_module: str | None = None) -> Path:
        template_path = self._template_path(template_name, template_module)

        return Path(self._load(template_path).filename)

    def render_template(
        self, template_name: str, template_module: str | None = None, values: dict[str, Any] | None = None
    ) -> str:
        values = {} if values is None else values

        if not isinstance(values, dict):
            raise TypeError(f'Template values must be a dictionary, got {type(values).__name__}')

        template_path = self._template_path(template_name, template_module)
        template = self._load(template_path)

        missing = self.variables(template_name, template_module) - values.keys()
        if missing:
            raise ValueError(f"Template '{template_path}' is missing values for: {', '.join(sorted(missing))}")

        self._logger.debug(f'Rendering template {template_path}')

        return template.render(**values)


template_loader = TemplateLoader()
