# parapdf/parallel.py
from __future__ import annotations

import json
import logging
import math
import time
from functools import partial
from pathlib import Path
from typing import Dict, List, Tuple
import multiprocessing as mp

from tqdm import tqdm

from .config import PDFRepeatConfig
from .exceptions import UsageError, WorkerFailedError
from .models import BuildResult, BuildTask, FinalDocument, PageRange, Placement
from .partition import RemainderPolicy, covered_pages, partition_pages
from .pdf_processor import get_pdf_processor
from .placement import compute_placement, read_image_size
from .processors import worker_build_partial
from .logger import configure_worker_logging

logger = logging.getLogger("parapdf")


def _positive_finite(*values) -> bool:
    return all(math.isfinite(v) and v > 0 for v in values)


# --- MAIN RUNNER CLASS ---

class DocumentRunner:
    def __init__(self, config: PDFRepeatConfig):
        self.config = config
        self.pdf_processor = get_pdf_processor(config.pdf_engine)

    # -----------------------------
    # Logging helpers
    # -----------------------------
    def _log_error(self, result: BuildResult):
        if not self.config.error_log_path:
            return
        try:
            self.config.error_log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config.error_log_path, "a", encoding="utf-8") as f:
                log_entry = {
                    "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
                    "worker_id": result.worker_id,
                    "output_path": result.output_path,
                    "error_type": result.error_type,
                    "error_reason": result.error,
                    "pages_built": result.pages_built,
                    "requested_pages": result.requested_pages,
                }
                f.write(json.dumps(log_entry, ensure_ascii=False) + "\n")
        except Exception:
            logger.exception("Failed to write error log")

    def _log_performance(self, metric: Dict):
        if not self.config.log_performance:
            return
        path = self.config.performance_log_path
        if not path:
            path = Path(str(self.config.output_path)).with_suffix(".perf.jsonl")
            self.config.performance_log_path = path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                log_entry = {"timestamp": time.strftime("%Y-%m-%dT%H:%M:%S%z"), **metric}
                f.write(json.dumps(log_entry, ensure_ascii=False) + "\n")
        except Exception:
            logger.exception("Failed to write performance log")

    # -----------------------------
    # Stage 1. Validate inputs, fail before any work starts
    # -----------------------------
    def _validate(self):
        cfg = self.config.normalize_paths()
        if isinstance(cfg.repetitions, bool) or not isinstance(cfg.repetitions, int) or cfg.repetitions < 0:
            raise UsageError(f"Repetition count must be a non-negative integer, got {cfg.repetitions!r}")
        if cfg.num_workers < 1:
            raise UsageError(f"Number of workers must be at least 1, got {cfg.num_workers}")
        if not _positive_finite(cfg.page_width, cfg.page_height):
            raise UsageError(f"Page size must be positive, got {cfg.page_width}x{cfg.page_height}")
        if cfg.remainder not in RemainderPolicy.ALL:
            raise UsageError(f"Unknown remainder policy, '{cfg.remainder}'. Supported, {list(RemainderPolicy.ALL)}")
        if (cfg.image_width is None) != (cfg.image_height is None):
            raise UsageError("Image width and height must be given together")
        if cfg.image_width is not None and not _positive_finite(cfg.image_width, cfg.image_height):
            raise UsageError(f"Image size must be positive, got {cfg.image_width}x{cfg.image_height}")
        if not Path(cfg.image_path).is_file():
            raise UsageError(f"Input image does not exist, {cfg.image_path}")
        if not str(cfg.output_path):
            raise UsageError("Output path must not be empty")

        # the merge target must never be one of the worker artifacts, cleanup would delete it
        output = cfg.output_path.resolve()
        for i in range(cfg.num_workers):
            if cfg.partial_path(i).resolve() == output:
                raise UsageError(
                    f"Output path {cfg.output_path} collides with the partial PDF of worker {i}, "
                    f"choose another output name or --work-dir"
                )

    # -----------------------------
    # Stage 2. Placement and partition
    # -----------------------------
    def _plan(self) -> Tuple[Placement, List[PageRange]]:
        cfg = self.config
        if cfg.image_width is not None:
            image_width, image_height = cfg.image_width, cfg.image_height
        else:
            image_width, image_height = read_image_size(cfg.image_path)

        placement = compute_placement(cfg.page_width, cfg.page_height, image_width, image_height)
        logger.info(
            "Image %sx%s placed at (%.2f, %.2f) size %.2fx%.2f, scale %.5f",
            image_width, image_height, placement.x, placement.y,
            placement.width, placement.height, placement.scale,
        )

        ranges = partition_pages(cfg.repetitions, cfg.num_workers, cfg.remainder)
        logger.info(
            "Split %d requested pages across %d workers, %d pages assigned",
            cfg.repetitions, cfg.num_workers, covered_pages(ranges),
        )
        return placement, ranges

    def _build_tasks(self, placement: Placement, ranges: List[PageRange]) -> List[BuildTask]:
        cfg = self.config
        return [
            BuildTask(
                worker_id=i,
                image_path=str(cfg.image_path),
                page_range=page_range,
                placement=placement,
                page_width=cfg.page_width,
                page_height=cfg.page_height,
                output_path=str(cfg.partial_path(i)),
            )
            for i, page_range in enumerate(ranges)
        ]

    # -----------------------------
    # Stage 3. Build partial documents in parallel, then join
    # -----------------------------
    def _build_partials(self, ctx, tasks: List[BuildTask]) -> List[BuildResult]:
        logger.progress("build start", extra={"phase": "build", "pct": 10})
        results: List[BuildResult] = []
        worker_fn = partial(worker_build_partial, pdf_engine=self.config.pdf_engine)

        pool = ctx.Pool(
            processes=self.config.num_workers,
            initializer=configure_worker_logging,
            initargs=(self.config.log_queue,),
        )
        try:
            # imap keeps worker order, so results[i] belongs to worker i
            for result in tqdm(pool.imap(worker_fn, tasks), total=len(tasks), desc="Building partial PDFs"):
                results.append(result)
                logger.progress(
                    "build progress",
                    extra={"phase": "build", "current": len(results), "total": len(tasks)}
                )
        finally:
            # Join barrier, the merge only starts once every worker has exited
            pool.close()
            pool.join()
            logger.debug("Worker pool has been shut down.")

        for result in results:
            if not result.ok:
                logger.warning(
                    "Worker %d failed after %d of %d pages (%s), %s",
                    result.worker_id, result.pages_built, result.requested_pages,
                    result.error_type, result.error,
                )
                self._log_error(result)
            self._log_performance({
                "metric_type": "partial_built",
                "worker_id": result.worker_id,
                "output_path": result.output_path,
                "ok": result.ok,
                "pages_built": result.pages_built,
                "duration_seconds": round(result.duration_seconds, 4),
            })
        return results

    # -----------------------------
    # Stage 4. Merge
    # -----------------------------
    def _merge(self, tasks: List[BuildTask], results: List[BuildResult]) -> FinalDocument:
        output_path = str(self.config.output_path)
        failures = [r for r in results if not r.ok]
        if failures and self.config.strict:
            raise WorkerFailedError(failures)

        # Worker results are not consulted here, a failed worker's path is
        # still handed to the merger unless strict mode stopped us above
        partial_paths = [t.output_path for t in tasks if t.page_range.page_count > 0]
        if not partial_paths:
            logger.warning("Nothing to merge, no pages were assigned to any worker. %s was not written", output_path)
            return FinalDocument(path=output_path, page_count=0, written=False)

        logger.progress("merge start", extra={"phase": "merge", "pct": 90})
        logger.info("Merging %d partial PDFs into %s", len(partial_paths), output_path)
        page_count = self.pdf_processor.merge(partial_paths, output_path)
        return FinalDocument(path=output_path, page_count=page_count)

    def _cleanup_partials(self, tasks: List[BuildTask]):
        for t in tasks:
            try:
                Path(t.output_path).unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove partial PDF %s, %s", t.output_path, e)

    # -----------------------------
    # Public entry point
    # -----------------------------
    def run(self) -> FinalDocument:
        logger.info("Run started")
        start_time = time.perf_counter()

        self._validate()
        placement, ranges = self._plan()
        tasks = self._build_tasks(placement, ranges)
        Path(self.config.work_dir).mkdir(parents=True, exist_ok=True)

        ctx = mp.get_context("spawn")
        results = self._build_partials(ctx, tasks)
        final = self._merge(tasks, results)

        if not self.config.keep_partials:
            self._cleanup_partials(tasks)

        self._log_performance({
            "metric_type": "run_finished",
            "output_path": final.path,
            "requested_pages": self.config.repetitions,
            "final_pages": final.page_count,
            "num_workers": self.config.num_workers,
            "wall_clock_total_seconds": round(time.perf_counter() - start_time, 4),
        })
        if final.written:
            logger.info("Final PDF %s created with %d pages", final.path, final.page_count)
        logger.info("Run finished")
        logger.progress("done", extra={"phase": "done", "pct": 100})
        return final


def build_repeated_pdf(config: PDFRepeatConfig) -> FinalDocument:
    """Convenience wrapper, runs the whole pipeline for one config."""
    return DocumentRunner(config).run()
