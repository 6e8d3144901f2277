"""
LaTeX Compilation Module

Compiles user snippets to PNG: wraps the snippet in the document template,
runs the LaTeX compiler in a scratch directory, parses the log for errors and
overfull boxes, and rasterizes the resulting PDF.
"""

import os
import re
import subprocess
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from quill.contexts.rendering.exceptions import LatexCompilationError
from quill.contexts.rendering.logger import _log_debug, _log_warning, log_compilation_result
from quill.contexts.rendering.outcomes import RenderMode
from quill.contexts.rendering.templates import DocumentTemplate
from quill.utils.pdf_processing import page_count, pdf_to_png

load_dotenv()

LATEX_COMPILER = os.getenv("LATEX_COMPILER", "pdflatex")
COMPILE_TIMEOUT_S = float(os.getenv("RENDER_TIMEOUT_S", "15"))

FILE_STEM = "snippet"
OVERFULL_HBOX = "Overfull \\hbox"

# Keep TeX from reading or writing outside the working directory
PARANOID_FILE_ACCESS = {"openin_any": "p", "openout_any": "p"}


@dataclass
class CompilationResult:
    """
    Result of LaTeX compilation.

    Attributes:
        success: Whether compilation succeeded
        pdf_path: Path to generated PDF (None if failed)
        stdout: Standard output from the compiler
        stderr: Standard error from the compiler
        errors: List of parsed LaTeX errors
        warnings: List of parsed LaTeX warnings
    """

    success: bool
    pdf_path: Optional[Path] = None
    stdout: str = ""
    stderr: str = ""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def overflow(self) -> bool:
        """True if any line was too wide for the page."""
        return any(warning.startswith(OVERFULL_HBOX) for warning in self.warnings)


@dataclass
class PngResult:
    """Rendered snippet and whether it overflowed its page width."""

    png: bytes
    overflow: bool


def _parse_latex_log(log_content: str) -> tuple[List[str], List[str]]:
    """
    Parse LaTeX log file for errors and warnings.

    Args:
        log_content: Content of the .log file

    Returns:
        Tuple of (errors, warnings)
    """
    errors = []
    warnings = []

    # LaTeX error pattern: "! Error message"
    error_pattern = re.compile(r"^! (.+)$", re.MULTILINE)
    for match in error_pattern.finditer(log_content):
        errors.append(match.group(1).strip())

    # With -file-line-error, errors look like "./snippet.tex:12: Message"
    file_line_pattern = re.compile(rf"^\./{FILE_STEM}\.tex:\d+: (.+)$", re.MULTILINE)
    for match in file_line_pattern.finditer(log_content):
        message = match.group(1).strip()
        if message not in errors:
            errors.append(message)

    # Box warnings keep their prefix so overflow can be told apart from underfull boxes
    warning_patterns = [
        r"LaTeX Warning: (.+)",
        r"Package \w+ Warning: (.+)",
        r"(Overfull \\hbox \(.+\))",
        r"(Underfull \\hbox \(.+\))",
    ]

    for pattern in warning_patterns:
        compiled = re.compile(pattern, re.MULTILINE)
        for match in compiled.finditer(log_content):
            warnings.append(match.group(1).strip())

    return errors, warnings


def compile_latex(
    document: str,
    compile_dir: Path,
    timeout_s: float = COMPILE_TIMEOUT_S,
    compiler: str = LATEX_COMPILER,
) -> CompilationResult:
    """
    Compile a complete LaTeX document to PDF.

    Pure compilation function - assumes compile_dir exists and is scratch space.

    Args:
        document: Full LaTeX document text
        compile_dir: Scratch directory to compile in
        timeout_s: Wall-clock budget for the compiler
        compiler: LaTeX compiler executable

    Returns:
        CompilationResult with success status and diagnostic information

    Raises:
        subprocess.TimeoutExpired: If the compiler outlives timeout_s
        FileNotFoundError: If the compiler executable is missing
    """
    tex_file = compile_dir / f"{FILE_STEM}.tex"
    tex_file.write_text(document, encoding="utf-8")

    cmd = [
        compiler,
        "-interaction=nonstopmode",
        "-halt-on-error",
        "-no-shell-escape",
        "-file-line-error",
        tex_file.name,
    ]

    result = subprocess.run(
        cmd,
        cwd=compile_dir,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",  # Replace invalid UTF-8 bytes instead of crashing
        timeout=timeout_s,
        env={**os.environ, **PARANOID_FILE_ACCESS},
    )

    errors = []
    warnings = []
    log_file = compile_dir / f"{FILE_STEM}.log"
    if log_file.exists():
        # LaTeX writes log files in latin-1 encoding (font metadata contains non-UTF-8)
        errors, warnings = _parse_latex_log(log_file.read_text(encoding="latin-1"))

    pdf_path = compile_dir / f"{FILE_STEM}.pdf"
    if not pdf_path.exists():
        if not errors:
            errors.append("PDF file was not generated")
        success = False
    else:
        # PDF exists and no LaTeX errors found - non-zero exit can happen for warnings
        success = len(errors) == 0

    if result.returncode != 0 and not errors:
        _log_debug(f"{compiler} exited with {result.returncode} but reported no errors")

    return CompilationResult(
        success=success,
        pdf_path=pdf_path if pdf_path.exists() else None,
        stdout=result.stdout,
        stderr=result.stderr,
        errors=errors,
        warnings=warnings,
    )


def render_to_png(
    source: str,
    mode: RenderMode = RenderMode.NORMAL,
    template: Optional[DocumentTemplate] = None,
    timeout_s: float = COMPILE_TIMEOUT_S,
) -> PngResult:
    """
    Render a user snippet to PNG.

    Args:
        source: User-supplied LaTeX body
        mode: Render mode selecting the page width
        template: Document template (default: DocumentTemplate())
        timeout_s: Wall-clock budget for the compiler

    Returns:
        PngResult with image bytes and overflow flag

    Raises:
        LatexCompilationError: If the snippet does not compile
        subprocess.TimeoutExpired: If the compiler outlives timeout_s
        FileNotFoundError: If the compiler executable is missing
    """
    template = template or DocumentTemplate()
    document = template.render(source, mode)

    with tempfile.TemporaryDirectory(prefix="quill-") as tmp:
        start_time = time.time()
        result = compile_latex(document, Path(tmp), timeout_s=timeout_s)
        log_compilation_result(
            result.errors, result.warnings, result.overflow, time.time() - start_time
        )

        if not result.success:
            raise LatexCompilationError(result.errors)

        pages = page_count(result.pdf_path)
        if pages is not None and pages > 1:
            _log_warning(f"Snippet produced {pages} pages, only the first is rendered")

        png = pdf_to_png(result.pdf_path, resolution=template.resolution)

    return PngResult(png=png, overflow=result.overflow)
