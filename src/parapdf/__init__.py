# src/parapdf/__init__.py
"""parapdf, repeat one image across many PDF pages using parallel workers."""

from .config import PDFRepeatConfig, PAGE_SIZES
from .exceptions import (
    ParaPDFError,
    UsageError,
    ImageError,
    PartitionError,
    EmbedError,
    PartialWriteError,
    MergeError,
    WorkerFailedError,
)
from .models import PageRange, Placement, PartialDocument, FinalDocument, BuildTask, BuildResult
from .partition import RemainderPolicy, partition_pages
from .placement import compute_placement, read_image_size
from .parallel import DocumentRunner, build_repeated_pdf

__version__ = "0.1.0"

__all__ = [
    "PDFRepeatConfig",
    "PAGE_SIZES",
    "ParaPDFError",
    "UsageError",
    "ImageError",
    "PartitionError",
    "EmbedError",
    "PartialWriteError",
    "MergeError",
    "WorkerFailedError",
    "PageRange",
    "Placement",
    "PartialDocument",
    "FinalDocument",
    "BuildTask",
    "BuildResult",
    "RemainderPolicy",
    "partition_pages",
    "compute_placement",
    "read_image_size",
    "DocumentRunner",
    "build_repeated_pdf",
]
