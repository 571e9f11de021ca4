# src/parapdf/pdf_processor.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Sequence, Union

import fitz  # PyMuPDF

from .exceptions import EmbedError, MergeError, PartialWriteError
from .models import Placement

logger = logging.getLogger("parapdf")

PathLike = Union[str, Path]


# --- Step 1, interface ---
class BasePDFProcessor(ABC):
    """
    Interface for any PDF engine. Covers both halves of the pipeline, encoding
    pages of a partial document and merging finished partials.
    """

    @abstractmethod
    def new_document(self) -> Any:
        """Returns a new, empty, in-memory document."""
        raise NotImplementedError

    @abstractmethod
    def add_image_page(self, doc: Any, image_path: PathLike, page_width: float,
                       page_height: float, placement: Placement, xref: int = 0) -> int:
        """
        Appends a blank page and draws the image at the placement rectangle.
        Returns the image object id, pass it back as `xref` on later pages so
        the document keeps a single copy of the image. Raises EmbedError.
        """
        raise NotImplementedError

    @abstractmethod
    def save(self, doc: Any, output_path: PathLike) -> None:
        """Serializes the document and releases it. Raises PartialWriteError."""
        raise NotImplementedError

    @abstractmethod
    def merge(self, input_paths: Sequence[PathLike], output_path: PathLike) -> int:
        """Concatenates the inputs in order into output_path, returns the page count. Raises MergeError."""
        raise NotImplementedError

    @abstractmethod
    def page_count(self, file_path: PathLike) -> int:
        raise NotImplementedError


# --- Step 2, concrete implementation with PyMuPDF ---
class PyMuPDFProcessor(BasePDFProcessor):
    """PDF engine that uses PyMuPDF."""

    def new_document(self) -> fitz.Document:
        return fitz.open()

    def add_image_page(self, doc, image_path, page_width, page_height, placement, xref=0):
        page = doc.new_page(width=page_width, height=page_height)
        try:
            if xref:
                return page.insert_image(fitz.Rect(*placement.as_rect()), xref=xref, keep_proportion=False)
            return page.insert_image(fitz.Rect(*placement.as_rect()), filename=str(image_path), keep_proportion=False)
        except Exception as e:
            raise EmbedError(f"Failed to place {image_path} on page {page.number}, {e}") from e

    def save(self, doc, output_path):
        try:
            Path(output_path).parent.mkdir(parents=True, exist_ok=True)
            doc.save(str(output_path), garbage=3, deflate=True)
        except Exception as e:
            raise PartialWriteError(f"Failed to write {output_path}, {e}") from e
        finally:
            doc.close()

    def merge(self, input_paths, output_path):
        out = fitz.open()
        try:
            for p in input_paths:
                try:
                    with fitz.open(str(p)) as src:
                        out.insert_pdf(src)
                except Exception as e:
                    raise MergeError(f"Cannot read partial document {p}, {e}") from e
            try:
                Path(output_path).parent.mkdir(parents=True, exist_ok=True)
                out.save(str(output_path), garbage=3, deflate=True)
            except Exception as e:
                raise MergeError(f"Failed to write merged document {output_path}, {e}") from e
            return len(out)
        finally:
            out.close()

    def page_count(self, file_path):
        with fitz.open(str(file_path)) as doc:
            return len(doc)


# --- Step 3, factory ---
def get_pdf_processor(engine_name: str = "pymupdf") -> BasePDFProcessor:
    """
    Create a PDF processor by name.
    """
    name = (engine_name or "").lower()
    if name == "pymupdf":
        return PyMuPDFProcessor()
    raise ValueError(f"Unknown PDF engine, '{engine_name}'. Supported engines, ['pymupdf']")
