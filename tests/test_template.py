"""Tests for template library."""

import pytest

from hub_render.exceptions import FailedRenderValueTemplatesError
from hub_render.inputs import LayerInput, ValuesInputs
from hub_render.manifest import Flavor, ResourceRef
from hub_render.template import exec_input_values_templates


@pytest.fixture(name="inputs")
def inputs_fixture() -> ValuesInputs:
    """Fixture for inputs used as template context."""
    return ValuesInputs(
        name="bookinfo",
        install_namespace="apps",
        flavor=Flavor(name="default"),
        layers=[LayerInput("mesh", "istio")],
        mesh_ref=ResourceRef(name="istio", namespace="istio-system"),
    )


def test_go_style_references(inputs: ValuesInputs) -> None:
    """Test references to fields with a leading dot."""
    inputs.spec_defined_values = (
        "namespace: {{ .InstallNamespace }}\n"
        "release: {{.Name}}\n"
        "mesh: {{ .MeshRef.Name }}.{{ .MeshRef.Namespace }}\n"
    )
    result = exec_input_values_templates(inputs)
    assert result.spec_defined_values == (
        "namespace: apps\nrelease: bookinfo\nmesh: istio.istio-system\n"
    )


def test_snake_case_references(inputs: ValuesInputs) -> None:
    """Test references using the python field names."""
    inputs.user_defined_values = (
        "ns: {{ install_namespace }}\n"
        "flavor: {{ flavor.name }}\n"
        "layer: {{ layers[0].option_id }}\n"
    )
    result = exec_input_values_templates(inputs)
    assert result.user_defined_values == "ns: apps\nflavor: default\nlayer: istio\n"


def test_param_templates(inputs: ValuesInputs) -> None:
    """Test parameter values may reference the inputs and other params."""
    inputs.params = {
        "host": "{{ .Name }}.{{ .InstallNamespace }}.svc",
        "plain": "value",
        "region": "us-east-1",
        "bucket": "{{ .Params.region }}-data",
    }
    result = exec_input_values_templates(inputs)
    assert result.params == {
        "host": "bookinfo.apps.svc",
        "plain": "value",
        "region": "us-east-1",
        "bucket": "us-east-1-data",
    }


def test_inputs_not_mutated(inputs: ValuesInputs) -> None:
    """Test rendering returns a copy and leaves the original inputs unchanged."""
    inputs.spec_defined_values = "ns: {{ .InstallNamespace }}"
    inputs.params = {"host": "{{ .Name }}"}
    result = exec_input_values_templates(inputs)
    assert result is not inputs
    assert inputs.spec_defined_values == "ns: {{ .InstallNamespace }}"
    assert inputs.params == {"host": "{{ .Name }}"}
    assert result.spec_defined_values == "ns: apps"
    assert result.params == {"host": "bookinfo"}


def test_single_pass(inputs: ValuesInputs) -> None:
    """Test that rendered output is not expanded a second time."""
    inputs.params = {"raw": "{{ '{{ name }}' }}"}
    result = exec_input_values_templates(inputs)
    assert result.params == {"raw": "{{ name }}"}


def test_text_without_templates(inputs: ValuesInputs) -> None:
    """Test text without template expressions is returned unchanged."""
    inputs.spec_defined_values = "a: {b: 1}\n# {% not a block %}\n"
    result = exec_input_values_templates(inputs)
    assert result.spec_defined_values == "a: {b: 1}\n# {% not a block %}\n"


def test_undefined_reference(inputs: ValuesInputs) -> None:
    """Test a reference to an undefined field fails."""
    inputs.user_defined_values = "x: {{ .DoesNotExist }}"
    with pytest.raises(FailedRenderValueTemplatesError, match="userValues"):
        exec_input_values_templates(inputs)


def test_malformed_template(inputs: ValuesInputs) -> None:
    """Test a malformed template expression fails without partial results."""
    inputs.spec_defined_values = "ns: {{ .InstallNamespace }}"
    inputs.params = {"broken": "{{ .Name "}
    with pytest.raises(FailedRenderValueTemplatesError, match="param 'broken'") as exc:
        exec_input_values_templates(inputs)
    assert exc.value.field_name == "param 'broken'"
    assert inputs.spec_defined_values == "ns: {{ .InstallNamespace }}"


@pytest.mark.parametrize(
    ("template", "cause"),
    [
        ("{{ .Name + 1 }}", TypeError),
        ("{{ 1 / 0 }}", ZeroDivisionError),
        ("{{ [].pop() }}", IndexError),
        ("{{ '{:d}'.format(name) }}", ValueError),
    ],
)
def test_expression_evaluation_error(
    inputs: ValuesInputs, template: str, cause: type[Exception]
) -> None:
    """Test errors raised while evaluating an expression name the field."""
    inputs.params = {"value": template}
    with pytest.raises(FailedRenderValueTemplatesError, match="param 'value'") as exc:
        exec_input_values_templates(inputs)
    assert isinstance(exc.value.cause, cause)
    assert inputs.params == {"value": template}
