"""
Document Templates

Loads the LaTeX document wrapper and the page layout presets that turn a bare
user snippet into a complete, compilable document.
"""

import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template
from omegaconf import OmegaConf

from quill.contexts.rendering.outcomes import RenderMode

load_dotenv()

RENDERING_PATH = Path(__file__).parent
TEMPLATE_PATH = Path(os.getenv("RENDER_TEMPLATE_PATH", str(RENDERING_PATH / "template")))
RENDER_PRESETS_PATH = Path(
    os.getenv("RENDER_PRESETS_PATH", str(RENDERING_PATH / "render_presets.yaml"))
)

DOCUMENT_TEMPLATE = "document.tex.jinja"


def load_render_presets(config_path: Path = None) -> Dict[str, Any]:
    """
    Load render_presets.yaml as a plain dict.

    Args:
        config_path: Optional path to presets file (defaults to RENDER_PRESETS_PATH)

    Returns:
        Dict with "page" settings and per-mode "widths"

    Raises:
        ValueError: If a render mode has no configured width
    """
    if config_path is None:
        config_path = RENDER_PRESETS_PATH

    presets = OmegaConf.to_container(OmegaConf.load(config_path), resolve=True)

    missing = [mode.value for mode in RenderMode if mode.value not in presets.get("widths", {})]
    if missing:
        raise ValueError(f"No width configured for render modes: {missing}")

    return presets


class DocumentTemplate:
    """
    Jinja2 wrapper around the LaTeX document template.

    Uses custom delimiters to avoid conflicts with LaTeX syntax:
    - Variable: <<< var >>>
    - Block: <%% block %%>
    - Comment: <# comment #>

    The user's source is substituted as a value, never parsed as a template,
    so delimiters inside it are harmless.
    """

    def __init__(self, template_dir: Path = None, presets: Dict[str, Any] = None):
        """
        Args:
            template_dir: Directory holding document.tex.jinja (defaults to TEMPLATE_PATH)
            presets: Page layout presets (defaults to load_render_presets())
        """
        self.template_dir = template_dir or TEMPLATE_PATH
        self.presets = presets if presets is not None else load_render_presets()

        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            # Catches silent failures
            undefined=StrictUndefined,
            variable_start_string="<<<",
            variable_end_string=">>>",
            block_start_string="<%%",
            block_end_string="%%>",
            comment_start_string="<#",
            comment_end_string="#>",
            # Preserve whitespace (important for LaTeX)
            trim_blocks=False,
            lstrip_blocks=False,
            keep_trailing_newline=True,
        )
        self._template: Template = None

    @property
    def template(self) -> Template:
        if self._template is None:
            self._template = self.env.get_template(DOCUMENT_TEMPLATE)
        return self._template

    @property
    def resolution(self) -> int:
        return int(self.presets["page"]["resolution"])

    def width_for(self, mode: RenderMode) -> str:
        return self.presets["widths"][RenderMode(mode).value]

    def render(self, source: str, mode: RenderMode) -> str:
        """
        Wrap a snippet in the full document for the given mode.

        Args:
            source: User-supplied LaTeX body
            mode: Render mode selecting the page width

        Returns:
            Complete LaTeX document text
        """
        page = self.presets["page"]
        return self.template.render(
            width=self.width_for(mode),
            height=page["height"],
            background=page["background"],
            foreground=page["foreground"],
            source=source,
        )
