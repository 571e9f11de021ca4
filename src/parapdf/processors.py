# src/parapdf/processors.py
from __future__ import annotations

import logging
import time

from .exceptions import EmbedError, PartialWriteError
from .models import BuildResult, BuildTask
from .pdf_processor import get_pdf_processor

logger = logging.getLogger("parapdf")


def worker_build_partial(task: BuildTask, pdf_engine: str = "pymupdf") -> BuildResult:
    """
    Build one partial document covering task.page_range, every page showing
    the image at task.placement, and save it to task.output_path.

    Failures stay local to this worker. They are logged and folded into the
    returned BuildResult, nothing is raised across the pool boundary:
      - embed failure, remaining pages are skipped and no artifact is written
      - write failure, the artifact may be missing or truncated
    An empty range writes no artifact, PDF files need at least one page.
    """
    start = time.perf_counter()
    result = BuildResult(
        worker_id=task.worker_id,
        output_path=task.output_path,
        requested_pages=task.page_range.page_count,
    )
    try:
        if task.page_range.page_count == 0:
            logger.debug("Worker %d has an empty range, nothing to write", task.worker_id)
            return result

        processor = get_pdf_processor(pdf_engine)
        doc = processor.new_document()
        image_xref = 0
        try:
            for _ in task.page_range:
                image_xref = processor.add_image_page(
                    doc, task.image_path, task.page_width, task.page_height, task.placement,
                    xref=image_xref,
                )
                result.pages_built += 1
        except EmbedError as e:
            doc.close()
            logger.error("Error adding image to page for %s, %s", task.output_path, e)
            result.ok = False
            result.error = str(e)
            result.error_type = type(e).__name__
            return result

        try:
            processor.save(doc, task.output_path)
        except PartialWriteError as e:
            logger.error("Error writing partial PDF %s, %s", task.output_path, e)
            result.ok = False
            result.error = str(e)
            result.error_type = type(e).__name__
            return result

        logger.info("Partial PDF %s created with %d pages", task.output_path, result.pages_built)
        return result

    except Exception as e:
        logger.exception("Unexpected failure in worker %d", task.worker_id)
        result.ok = False
        result.error = f"Unexpected worker failure, {e}"
        result.error_type = type(e).__name__
        return result

    finally:
        result.duration_seconds = time.perf_counter() - start
