"""End-to-end runs of DocumentRunner, most of them on a real spawn pool."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import fitz
import pytest

from parapdf import (
    DocumentRunner,
    MergeError,
    PDFRepeatConfig,
    PartitionError,
    UsageError,
    WorkerFailedError,
    build_repeated_pdf,
)
from parapdf.processors import worker_build_partial


def _pages(path) -> int:
    with fitz.open(str(path)) as doc:
        return len(doc)


def test_eight_pages_on_four_workers(image_png: Path, make_config) -> None:
    config = make_config(image_png, 8, num_workers=4)

    final = DocumentRunner(config).run()

    assert final.written
    assert final.page_count == 8
    assert _pages(config.output_path) == 8
    # partials stay on disk by default, two pages each
    assert [_pages(config.partial_path(i)) for i in range(4)] == [2, 2, 2, 2]


def test_remainder_is_dropped_by_default(image_png: Path, make_config) -> None:
    config = make_config(image_png, 10, num_workers=4)

    final = build_repeated_pdf(config)

    assert final.page_count == 8
    assert _pages(config.output_path) == 8


def test_remainder_goes_to_last_worker(image_png: Path, make_config) -> None:
    config = make_config(image_png, 10, num_workers=4, remainder="last")

    final = build_repeated_pdf(config)

    assert final.page_count == 10
    assert [_pages(config.partial_path(i)) for i in range(4)] == [2, 2, 2, 4]


def test_reject_policy_fails_before_any_artifact(image_png: Path, make_config) -> None:
    config = make_config(image_png, 10, num_workers=4, remainder="reject")

    with pytest.raises(PartitionError):
        build_repeated_pdf(config)

    assert not config.output_path.exists()
    assert not any(config.partial_path(i).exists() for i in range(4))


def test_zero_repetitions_has_nothing_to_merge(image_png: Path, make_config) -> None:
    config = make_config(image_png, 0, num_workers=4)

    final = build_repeated_pdf(config)

    assert not final.written
    assert final.page_count == 0
    assert not config.output_path.exists()
    assert not any(config.partial_path(i).exists() for i in range(4))


def test_clean_partials_after_merge(image_png: Path, make_config) -> None:
    config = make_config(image_png, 6, num_workers=3, keep_partials=False)

    final = build_repeated_pdf(config)

    assert _pages(final.path) == 6
    assert not any(config.partial_path(i).exists() for i in range(3))


def test_explicit_image_size_drives_placement(image_png: Path, make_config) -> None:
    config = make_config(image_png, 2, num_workers=2, image_width=500, image_height=500)

    build_repeated_pdf(config)

    with fitz.open(str(config.output_path)) as doc:
        bbox = doc[0].get_image_info()[0]["bbox"]
    # a square box is used even though the file is 50x40
    assert bbox[2] - bbox[0] == pytest.approx(595.28, abs=0.01)
    assert bbox[3] - bbox[1] == pytest.approx(595.28, abs=0.01)


def test_failed_workers_surface_as_merge_error(bad_image: Path, make_config, tmp_path: Path) -> None:
    error_log = tmp_path / "errors.jsonl"
    config = make_config(
        bad_image, 4, num_workers=2, image_width=10, image_height=10, error_log_path=error_log
    )

    with pytest.raises(MergeError):
        build_repeated_pdf(config)

    assert not config.output_path.exists()
    entries = [json.loads(line) for line in error_log.read_text(encoding="utf-8").splitlines()]
    assert sorted(e["worker_id"] for e in entries) == [0, 1]
    assert all(e["error_type"] == "EmbedError" for e in entries)


def test_strict_mode_stops_before_merge(bad_image: Path, make_config) -> None:
    config = make_config(bad_image, 4, num_workers=2, image_width=10, image_height=10, strict=True)

    with pytest.raises(WorkerFailedError) as excinfo:
        build_repeated_pdf(config)

    assert [r.worker_id for r in excinfo.value.failures] == [0, 1]
    assert not config.output_path.exists()


def test_performance_log(image_png: Path, make_config, tmp_path: Path) -> None:
    perf = tmp_path / "perf.jsonl"
    config = make_config(image_png, 4, num_workers=2, log_performance=True, performance_log_path=perf)

    build_repeated_pdf(config)

    entries = [json.loads(line) for line in perf.read_text(encoding="utf-8").splitlines()]
    kinds = [e["metric_type"] for e in entries]
    assert kinds.count("partial_built") == 2
    assert kinds[-1] == "run_finished"
    assert entries[-1]["final_pages"] == 4


@pytest.mark.parametrize(
    "overrides",
    [
        {"repetitions": -1},
        {"num_workers": 0},
        {"page_width": 0},
        {"remainder": "spread"},
        {"image_width": 100},
        {"image_width": 0, "image_height": 10},
        {"image_width": float("nan"), "image_height": 10},
        {"page_height": float("inf")},
    ],
)
def test_invalid_configs_raise_usage_error(image_png: Path, make_config, overrides) -> None:
    params = {"repetitions": 4, **overrides}
    config = make_config(image_png, **params)

    with pytest.raises(UsageError):
        DocumentRunner(config).run()


def test_missing_image_is_a_usage_error(tmp_path: Path, make_config) -> None:
    config = make_config(tmp_path / "missing.png", 4)

    with pytest.raises(UsageError):
        DocumentRunner(config).run()


def test_output_colliding_with_a_partial_is_rejected(image_png: Path, make_config) -> None:
    config = make_config(image_png, 8, num_workers=4, keep_partials=False)
    config.output_path = config.partial_path(0)

    with pytest.raises(UsageError):
        build_repeated_pdf(config)

    assert not any(config.partial_path(i).exists() for i in range(4))


def test_string_paths_are_accepted(bad_image: Path, tmp_path: Path) -> None:
    error_log = tmp_path / "logs" / "errors.jsonl"
    config = PDFRepeatConfig(
        image_path=str(bad_image),
        repetitions=2,
        output_path=str(tmp_path / "final.pdf"),
        num_workers=2,
        image_width=10,
        image_height=10,
        work_dir=str(tmp_path / "work"),
        error_log_path=str(error_log),
    )

    with pytest.raises(MergeError):
        build_repeated_pdf(config)

    assert isinstance(config.work_dir, Path)
    assert len(error_log.read_text(encoding="utf-8").splitlines()) == 2


def _run_with_one_failing_worker(runner: DocumentRunner, bad_image: Path, failing_id: int):
    """Drive the runner stages in-process so only one worker sees a broken image."""
    runner._validate()
    placement, ranges = runner._plan()
    tasks = runner._build_tasks(placement, ranges)
    worker_tasks = [
        replace(t, image_path=str(bad_image)) if t.worker_id == failing_id else t
        for t in tasks
    ]
    results = [worker_build_partial(t) for t in worker_tasks]
    return tasks, results


def test_stale_partial_of_a_failed_worker_is_merged_as_is(
    image_png: Path, bad_image: Path, make_config
) -> None:
    config = make_config(image_png, 8, num_workers=4)
    # leftover one-page artifact from an earlier run
    stale = config.partial_path(1)
    stale.parent.mkdir(parents=True, exist_ok=True)
    with fitz.open() as doc:
        doc.new_page()
        doc.save(str(stale))

    runner = DocumentRunner(config)
    tasks, results = _run_with_one_failing_worker(runner, bad_image, failing_id=1)
    final = runner._merge(tasks, results)

    assert [r.ok for r in results] == [True, False, True, True]
    assert final.written
    assert final.page_count == 7
    assert _pages(config.output_path) == 7


def test_strict_mode_refuses_the_stale_partial(image_png: Path, bad_image: Path, make_config) -> None:
    config = make_config(image_png, 8, num_workers=4, strict=True)
    stale = config.partial_path(1)
    stale.parent.mkdir(parents=True, exist_ok=True)
    with fitz.open() as doc:
        doc.new_page()
        doc.save(str(stale))

    runner = DocumentRunner(config)
    tasks, results = _run_with_one_failing_worker(runner, bad_image, failing_id=1)

    with pytest.raises(WorkerFailedError):
        runner._merge(tasks, results)
    assert not config.output_path.exists()
