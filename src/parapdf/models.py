# parapdf/models.py
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple


@dataclass(frozen=True)
class PageRange:
    """Half-open interval [start, end) over the global page index space."""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0:
            raise ValueError(f"PageRange start must be non-negative, got {self.start}")
        if self.start > self.end:
            raise ValueError(f"PageRange start {self.start} is after end {self.end}")

    @property
    def page_count(self) -> int:
        return self.end - self.start

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end))


@dataclass(frozen=True)
class Placement:
    """Destination rectangle of the image on a page, in points."""
    x: float
    y: float
    width: float
    height: float
    scale: float

    def as_rect(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass
class PartialDocument:
    """A document produced by one worker, covering one page range."""
    id: int
    path: str
    page_count: int


@dataclass
class FinalDocument:
    """The merged output. `written` is False when there was nothing to merge."""
    path: str
    page_count: int
    written: bool = True


@dataclass
class BuildTask:
    """Represents one worker's share of the run. Must stay picklable."""
    worker_id: int
    image_path: str
    page_range: PageRange
    placement: Placement
    page_width: float
    page_height: float
    output_path: str


@dataclass
class BuildResult:
    """What a worker reports back at the join barrier."""
    worker_id: int
    output_path: str
    requested_pages: int
    pages_built: int = 0
    ok: bool = True
    error: Optional[str] = None
    error_type: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def partial(self) -> Optional[PartialDocument]:
        if not self.ok:
            return None
        return PartialDocument(id=self.worker_id, path=self.output_path, page_count=self.pages_built)
