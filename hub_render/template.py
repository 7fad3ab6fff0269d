"""Library for expanding template expressions in the render inputs.

The spec defined values, user defined values, and parameter values may contain
template expressions (text delimited by `{{` and `}}`). These are rendered with
the inputs themselves as the template context, so a parameter value may refer
to the install namespace with `{{ .InstallNamespace }}` or
`{{ install_namespace }}`.

Expansion is a single pass: the output of an expression is never scanned again
for further expressions.
"""

import dataclasses
import logging
import re

from jinja2 import Environment, StrictUndefined, TemplateError

from .exceptions import FailedRenderValueTemplatesError
from .inputs import ValuesInputs

__all__ = [
    "exec_input_values_templates",
    "render_template",
]

_LOGGER = logging.getLogger(__name__)

_TEMPLATE_START = "{{"

# Go style templates refer to fields of the data with a leading dot.
_LEADING_DOT_RE = re.compile(r"(\{\{-?\s*)\.(?=[A-Za-z_])")

_JINJA_ENV = Environment(
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


def render_template(field_name: str, content: str, inputs: ValuesInputs) -> str:
    """Render the template expressions in content using the inputs as context."""
    if _TEMPLATE_START not in content:
        return content
    source = _LEADING_DOT_RE.sub(r"\1", content)
    try:
        template = _JINJA_ENV.from_string(source)
        return template.render(inputs.template_context())
    except (TemplateError, TypeError, ValueError, ArithmeticError, LookupError) as err:
        _LOGGER.debug("Failed to render template %s: %s", field_name, err)
        raise FailedRenderValueTemplatesError(field_name, err) from err


def exec_input_values_templates(inputs: ValuesInputs) -> ValuesInputs:
    """Return a copy of the inputs with all template expressions rendered.

    Fields are rendered in order: spec values, user values, then each parameter.
    Later fields see the already rendered values of earlier fields.
    """
    result = dataclasses.replace(inputs, params=dict(inputs.params))

    result.spec_defined_values = render_template(
        "specValues", result.spec_defined_values, result
    )
    result.user_defined_values = render_template(
        "userValues", result.user_defined_values, result
    )
    for name, value in list(result.params.items()):
        result.params[name] = render_template(f"param '{name}'", value, result)

    return result
