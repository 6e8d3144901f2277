"""Unit tests for document template and render presets."""

import pytest
from jinja2 import TemplateNotFound

from quill.contexts.rendering.outcomes import RenderMode
from quill.contexts.rendering.templates import DocumentTemplate, load_render_presets


@pytest.mark.unit
def test_load_default_presets():
    presets = load_render_presets()

    assert presets["widths"] == {"normal": "11.5cm", "wide": "18cm"}
    assert presets["page"]["height"] == "21cm"
    assert presets["page"]["resolution"] == 300


@pytest.mark.unit
def test_presets_missing_mode_width(tmp_path):
    config = tmp_path / "presets.yaml"
    config.write_text("page:\n  height: 21cm\nwidths:\n  normal: 11.5cm\n")

    with pytest.raises(ValueError, match="wide"):
        load_render_presets(config)


@pytest.mark.unit
@pytest.mark.parametrize(
    "mode, width", [(RenderMode.NORMAL, "11.5cm"), (RenderMode.WIDE, "18cm")]
)
def test_width_selected_by_mode(mode, width):
    document = DocumentTemplate().render("$x$", mode)

    assert f"paperwidth={width}," in document
    assert "paperheight=21cm" in document


@pytest.mark.unit
def test_render_full_document():
    document = DocumentTemplate().render(r"$e^{i\pi} = -1$", RenderMode.NORMAL)

    assert r"\documentclass[preview,border=2pt]{standalone}" in document
    assert r"\definecolor{chatbg}{HTML}{313338}" in document
    assert r"\color{white}" in document
    assert "$e^{i\\pi} = -1$\n\\end{document}" in document


@pytest.mark.unit
def test_source_is_not_evaluated_as_template():
    """Template delimiters inside user source come through verbatim."""
    source = "<<< width >>> <%% if true %%> {{ x }}"

    document = DocumentTemplate().render(source, RenderMode.NORMAL)

    assert source in document


@pytest.mark.unit
def test_resolution_from_presets():
    presets = load_render_presets()
    presets["page"]["resolution"] = 150

    assert DocumentTemplate(presets=presets).resolution == 150


@pytest.mark.unit
def test_missing_template_dir(tmp_path):
    template = DocumentTemplate(template_dir=tmp_path)

    with pytest.raises(TemplateNotFound):
        template.render("$x$", RenderMode.NORMAL)
