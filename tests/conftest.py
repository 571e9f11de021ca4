from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from parapdf import PDFRepeatConfig


@pytest.fixture
def image_png(tmp_path: Path) -> Path:
    """A small landscape PNG, 50x40 pixels."""
    path = tmp_path / "image.png"
    Image.new("RGB", (50, 40), (200, 30, 30)).save(path)
    return path


@pytest.fixture
def bad_image(tmp_path: Path) -> Path:
    """A file with an image suffix that no decoder accepts."""
    path = tmp_path / "broken.png"
    path.write_bytes(b"this is not an image at all")
    return path


@pytest.fixture
def make_config(tmp_path: Path):
    """Factory for configs that keep every artifact inside tmp_path."""

    def _make(image_path: Path, repetitions: int, **overrides) -> PDFRepeatConfig:
        work_dir = tmp_path / "work"
        params = dict(
            image_path=image_path,
            repetitions=repetitions,
            output_path=tmp_path / "out" / "final.pdf",
            work_dir=work_dir,
        )
        params.update(overrides)
        return PDFRepeatConfig(**params)

    return _make
