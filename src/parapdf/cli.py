# src/parapdf/cli.py
from __future__ import annotations

import argparse
import logging
import math
import re
import sys
from pathlib import Path
from typing import List, Optional, Tuple
import multiprocessing as mp

from .config import DEFAULT_NUM_WORKERS, PAGE_SIZES, PDFRepeatConfig
from .exceptions import ParaPDFError
from .logger import configure_worker_logging, setup_logging
from .partition import RemainderPolicy

__all__ = ["run_pipeline", "main"]

logger = logging.getLogger("parapdf")

USAGE = "parapdf <input_image> <number_of_repetitions> <output_pdf> [options]"


class _ExitOneParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad input, this tool reports usage errors with 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


# Helper

# ASCII digits with an optional sign, no spaces or underscores
_INT_RE = re.compile(r"[+-]?[0-9]+")


def _strict_int(val: str) -> int:
    if not isinstance(val, str) or not _INT_RE.fullmatch(val):
        raise ValueError(val)
    return int(val)


def _non_negative_int(val: str) -> int:
    try:
        n = _strict_int(val)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number of repetitions, {val!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"Number of repetitions must not be negative, got {n}")
    return n


def _positive_int(val: str) -> int:
    try:
        n = _strict_int(val)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {val!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {n}")
    return n


def _image_size(val: str) -> Tuple[float, float]:
    """
    Accept WIDTHxHEIGHT, e.g. 500x500 or 1240.5X1754
    """
    parts = val.lower().split("x")
    try:
        w, h = (float(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"--image-size must look like WIDTHxHEIGHT, got {val!r}")
    if not (math.isfinite(w) and math.isfinite(h)) or w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError(f"--image-size must be positive and finite, got {val!r}")
    return w, h


def run_pipeline(config: PDFRepeatConfig):
    """
    Log the run settings and execute the pipeline.
    """
    from .parallel import DocumentRunner  # local import to avoid import cycles

    logger.info("Starting parapdf")
    logger.info("Input image, %s", config.image_path)
    logger.info("Output file, %s", config.output_path)
    logger.info(
        "Repetitions, %s | workers, %s | page size, %sx%s | remainder, %s | strict, %s",
        config.repetitions, config.num_workers, config.page_width, config.page_height,
        config.remainder, config.strict,
    )
    return DocumentRunner(config).run()


# -------------------------------
# CLI parsing
# -------------------------------

def _build_parser() -> argparse.ArgumentParser:
    p = _ExitOneParser(
        prog="parapdf",
        usage=USAGE,
        description="parapdf, build a PDF that repeats one image on every page, in parallel",
    )

    p.add_argument("input_image", type=Path, help="Image to place on every page")
    p.add_argument("repetitions", type=_non_negative_int, help="Number of pages to generate")
    p.add_argument("output_pdf", type=Path, help="Path of the merged PDF")

    # Runtime knobs
    p.add_argument("-w", "--workers", type=_positive_int, default=DEFAULT_NUM_WORKERS,
                   help="Number of worker processes, one partial PDF each")
    p.add_argument(
        "--remainder",
        choices=list(RemainderPolicy.ALL),
        default=RemainderPolicy.DROP,
        help="What to do with pages left over when repetitions is not a multiple of workers",
    )
    p.add_argument("--strict", action="store_true",
                   help="Abort before merging when any worker failed")
    p.add_argument("--work-dir", type=Path, default=Path("."),
                   help="Directory for the partial_<n>.pdf files")

    # Layout
    layout_group = p.add_argument_group("Layout")
    layout_group.add_argument("--page-size", choices=sorted(PAGE_SIZES), default="a4", help="Page size")
    layout_group.add_argument("--image-size", type=_image_size,
                              help="Nominal image size WIDTHxHEIGHT, read from the image when omitted")

    # Partial files
    partial_group = p.add_argument_group("Partial files")
    mx_keep = partial_group.add_mutually_exclusive_group()
    mx_keep.add_argument(
        "--keep-partials",
        dest="keep_partials",
        action="store_true",
        help="Leave the partial PDFs on disk after merging (default).",
    )
    mx_keep.add_argument(
        "--clean-partials",
        dest="keep_partials",
        action="store_false",
        help="Delete the partial PDFs after a successful merge.",
    )
    p.set_defaults(keep_partials=True)

    # Logging (separate group keeps --help clean)
    log_group = p.add_argument_group("Logging")
    log_group.add_argument("-v", "--verbose", action="store_true", help="Show debug messages")
    log_group.add_argument("--log-file", type=Path, help="Also write the log to this file")
    log_group.add_argument("--error-log-path", type=Path, help="Path to save worker failures as JSONL")
    log_group.add_argument("--log-performance", action="store_true", help="Enable performance logging to a file")
    log_group.add_argument("--performance-log-path", type=Path, help="Path for the performance log JSONL file")

    return p


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _config_from_args(args: argparse.Namespace, log_queue) -> PDFRepeatConfig:
    page_width, page_height = PAGE_SIZES[args.page_size]
    image_width, image_height = args.image_size if args.image_size else (None, None)

    cfg_dict = {
        "image_path": args.input_image,
        "repetitions": args.repetitions,
        "output_path": args.output_pdf,
        "num_workers": args.workers,
        "page_width": page_width,
        "page_height": page_height,
        "image_width": image_width,
        "image_height": image_height,
        "remainder": args.remainder,
        "strict": args.strict,
        "keep_partials": args.keep_partials,
        "work_dir": args.work_dir,
        "error_log_path": args.error_log_path,
        "log_performance": args.log_performance,
        "performance_log_path": args.performance_log_path,
        "log_queue": log_queue,
    }
    cfg_dict = {k: v for k, v in cfg_dict.items() if v is not None}
    return PDFRepeatConfig.from_dict(cfg_dict)


# -------------------------------
# Entry point
# -------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    ctx = mp.get_context("spawn")
    manager = ctx.Manager()
    log_queue = manager.Queue(-1)

    listener = setup_logging(
        log_queue=log_queue,
        level=logging.DEBUG if args.verbose else logging.INFO,
        file_path=args.log_file,
    )
    listener.start()
    configure_worker_logging(log_queue)

    try:
        config = _config_from_args(args, log_queue)
        final = run_pipeline(config)
    except ParaPDFError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        try:
            listener.stop()
        finally:
            # detach this process from the queue before the manager goes away
            pkg_logger = logging.getLogger("parapdf")
            pkg_logger.handlers.clear()
            pkg_logger.propagate = True
            pkg_logger.setLevel(logging.NOTSET)
            manager.shutdown()

    if final.written:
        print(f"Final PDF created successfully: {final.path}")
    else:
        print(f"Nothing to merge, {final.path} was not written (0 pages requested or assigned)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
