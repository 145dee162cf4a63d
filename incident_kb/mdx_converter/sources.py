"""Loading incident notes from exported documents."""
from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup
from docx import Document
from docx.table import Table
from docx.text.paragraph import Paragraph

logger = logging.getLogger(__name__)

DEFAULT_PDF_BACKENDS = [
    "pypdf",
    "pdfminer",
    "pikepdf+pypdf",
    "pikepdf+pdfminer",
]
DEFAULT_MIN_PDF_CHARS = 200

TEXT_EXTENSIONS = {".txt", ".md", ".markdown"}
HTML_EXTENSIONS = {".html", ".htm"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | HTML_EXTENSIONS | {".docx", ".pdf"}

HTML_BLOCK_TAGS = ["p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "pre", "br"]


class UnsupportedSourceError(ValueError):
    """Raised for input files whose type cannot be read."""


@dataclass
class LoadedNotes:
    text: str
    source: str
    pdf_meta: dict[str, Any] | None = None


def resolve_pdf_backends(prefer_backends: Iterable[str] | None = None) -> list[str]:
    if prefer_backends:
        order = [backend.strip() for backend in prefer_backends if backend and backend.strip()]
    else:
        env_value = os.environ.get("INCIDENT_MDX_PDF_BACKENDS", "")
        order = [backend.strip() for backend in env_value.split(",") if backend.strip()]
    unique = list(dict.fromkeys(order))
    return unique or list(DEFAULT_PDF_BACKENDS)


def resolve_min_pdf_chars(value: int | None = None) -> int:
    if value is not None:
        return max(value, 0)
    env_value = os.environ.get("INCIDENT_MDX_MIN_PDF_CHARS")
    if env_value:
        try:
            return max(int(env_value), 0)
        except ValueError:
            logger.debug("Invalid INCIDENT_MDX_MIN_PDF_CHARS value: %s", env_value)
    return DEFAULT_MIN_PDF_CHARS


def html_to_text(markup: str) -> str:
    """Flatten HTML notes, rendering table rows as tab separated lines."""
    soup = BeautifulSoup(markup, "lxml")
    for hidden in soup(["script", "style"]):
        hidden.decompose()
    tables = [table for table in soup.find_all("table") if table.find_parent("table") is None]
    for table in tables:
        rows = []
        for row in table.find_all("tr"):
            cells = [cell.get_text(" ", strip=True) for cell in row.find_all(["th", "td"])]
            rows.append("\t".join(cells))
        table.replace_with(soup.new_string("\n\n" + "\n".join(rows) + "\n\n"))
    for tag in soup.find_all(HTML_BLOCK_TAGS):
        tag.insert_after(soup.new_string("\n"))
    text = soup.get_text()
    return "\n".join(line.strip() for line in text.splitlines())


def docx_to_text(path: Path) -> str:
    document = Document(str(path))
    lines: list[str] = []
    for block in document.iter_inner_content():
        if isinstance(block, Paragraph):
            lines.append(block.text)
        elif isinstance(block, Table):
            lines.append("")
            for row in block.rows:
                lines.append("\t".join(cell.text.strip() for cell in row.cells))
            lines.append("")
    return "\n".join(lines)


def extract_pdf_text(
    path: str | Path,
    *,
    min_chars: int = DEFAULT_MIN_PDF_CHARS,
    prefer_backends: Iterable[str] | None = None,
) -> tuple[str, dict[str, Any]]:
    """Extract text from a PDF, trying backends in order and keeping the longest result."""
    pdf_path = Path(path)
    try:
        byte_size = pdf_path.stat().st_size
    except OSError:
        byte_size = 0
    best_text = ""
    best_backend = "none"
    best_repaired = False
    warnings: list[str] = []
    last_error: str | None = None

    with tempfile.TemporaryDirectory(prefix="incident_pdf_") as tmp_dir:
        repaired_path: Path | None = None
        repair_error: str | None = None
        for backend_name in resolve_pdf_backends(prefer_backends):
            use_repair = backend_name.startswith("pikepdf+")
            base_backend = backend_name.split("+", 1)[-1]
            target = pdf_path
            if use_repair:
                if repaired_path is None and repair_error is None:
                    try:
                        repaired_path = _repair_pdf_with_pikepdf(pdf_path, Path(tmp_dir))
                    except RuntimeError as exc:
                        repair_error = str(exc)
                        logger.debug("pikepdf repair failed for %s: %s", pdf_path, exc)
                if repaired_path is None:
                    last_error = repair_error
                    warnings.append(f"{backend_name}: pikepdf repair failed: {repair_error}")
                    continue
                target = repaired_path
            try:
                text = _extract_with_backend(base_backend, target)
            except RuntimeError as exc:
                last_error = str(exc)
                warnings.append(f"{backend_name}: {exc}")
                logger.debug("PDF backend %s failed for %s: %s", backend_name, pdf_path, exc)
                continue
            if not text.strip():
                warnings.append(f"{backend_name}: extracted text empty")
                continue
            if len(text) > len(best_text):
                best_text, best_backend, best_repaired = text, backend_name, use_repair
            if len(best_text) >= min_chars:
                break

    if len(best_text) < min_chars:
        if best_text:
            warnings.append(f"best text shorter than min_chars ({len(best_text)} < {min_chars})")
        meta = {
            "backend": "none",
            "bytes": byte_size,
            "chars": len(best_text),
            "warnings": list(dict.fromkeys(warnings)),
            "repaired": repaired_path is not None,
            "error": last_error,
        }
        return "", meta
    meta = {
        "backend": best_backend,
        "bytes": byte_size,
        "chars": len(best_text),
        "warnings": list(dict.fromkeys(warnings)),
        "repaired": best_repaired,
        "error": None,
    }
    return best_text, meta


def _extract_with_backend(backend: str, path: Path) -> str:
    if backend == "pypdf":
        return _extract_with_pypdf(path)
    if backend == "pdfminer":
        return _extract_with_pdfminer(path)
    raise RuntimeError(f"unknown backend: {backend}")


def _extract_with_pypdf(path: Path) -> str:
    try:
        from pypdf import PdfReader
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pypdf is not installed") from exc
    try:
        reader = PdfReader(str(path))
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc


def _extract_with_pdfminer(path: Path) -> str:
    try:
        from pdfminer.high_level import extract_text
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pdfminer.six is not installed") from exc
    try:
        return extract_text(str(path)) or ""
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc


def _repair_pdf_with_pikepdf(source: Path, temp_dir: Path) -> Path:
    try:
        from pikepdf import Pdf
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pikepdf is not installed") from exc
    repaired_path = temp_dir / "repaired.pdf"
    try:
        with Pdf.open(str(source)) as pdf:
            pdf.save(str(repaired_path))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc
    return repaired_path


def load_notes(
    path: Path,
    *,
    min_pdf_chars: int | None = None,
    pdf_backends: Iterable[str] | None = None,
) -> LoadedNotes:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedSourceError(f"Unsupported notes file type: {path.name}")
    source = str(path)
    if suffix in TEXT_EXTENSIONS:
        return LoadedNotes(path.read_text(encoding="utf-8", errors="ignore"), source)
    if suffix in HTML_EXTENSIONS:
        markup = path.read_text(encoding="utf-8", errors="ignore")
        return LoadedNotes(html_to_text(markup), source)
    if suffix == ".docx":
        return LoadedNotes(docx_to_text(path), source)
    text, meta = extract_pdf_text(
        path,
        min_chars=resolve_min_pdf_chars(min_pdf_chars),
        prefer_backends=pdf_backends,
    )
    if meta["error"] or meta["backend"] == "none":
        logger.warning("No usable text extracted from %s", path)
    return LoadedNotes(text, source, meta)
