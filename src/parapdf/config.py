# parapdf/config.py
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# Page sizes in points (1/72 inch), portrait
PAGE_SIZES: Dict[str, Tuple[float, float]] = {
    "a3": (841.89, 1190.55),
    "a4": (595.28, 841.89),
    "a5": (419.53, 595.28),
    "letter": (612.0, 792.0),
    "legal": (612.0, 1008.0),
}

DEFAULT_NUM_WORKERS = 4

PATH_FIELDS = ["image_path", "output_path", "work_dir", "error_log_path", "performance_log_path"]


@dataclass
class PDFRepeatConfig:
    """Configuration for a parapdf run."""
    image_path: Path
    repetitions: int
    output_path: Path

    num_workers: int = DEFAULT_NUM_WORKERS
    page_width: float = PAGE_SIZES["a4"][0]
    page_height: float = PAGE_SIZES["a4"][1]
    # None means read them from the decoded image
    image_width: Optional[float] = None
    image_height: Optional[float] = None

    remainder: str = "drop"               # drop | last | reject
    strict: bool = False                  # refuse to merge when any worker failed
    keep_partials: bool = True            # leave partial_<n>.pdf on disk after merging
    work_dir: Path = Path(".")
    partial_prefix: str = "partial_"

    error_log_path: Optional[Path] = None
    log_performance: bool = False
    performance_log_path: Optional[Path] = None

    pdf_engine: str = "pymupdf"

    log_queue: Optional[Any] = None

    def normalize_paths(self):
        """Turns str values of the path fields into Path, in place."""
        for key in PATH_FIELDS:
            value = getattr(self, key)
            if isinstance(value, str):
                setattr(self, key, Path(value))
        return self

    def partial_path(self, worker_id: int) -> Path:
        return self.work_dir / f"{self.partial_prefix}{worker_id}.pdf"

    def to_dict(self):
        """Converts config to a plain dictionary, the log queue is left out."""
        d = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "log_queue"}
        for key, value in d.items():
            if isinstance(value, Path):
                d[key] = str(value)
        return d

    @classmethod
    def from_dict(cls, config_dict: dict):
        d = dict(config_dict)

        # normalize path-like fields
        for key in PATH_FIELDS:
            if key in d and isinstance(d[key], str):
                d[key] = Path(d[key])

        # allow explicit None to mean use default
        for key in ["num_workers", "page_width", "page_height", "remainder", "work_dir", "pdf_engine"]:
            if d.get(key) is None:
                d.pop(key, None)

        cfg = cls(**d)

        # if logging is on but no path was provided, pick one next to the output
        if cfg.log_performance and not cfg.performance_log_path:
            cfg.performance_log_path = Path(str(cfg.output_path)).with_suffix(".perf.jsonl")

        return cfg
