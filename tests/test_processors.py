"""Tests for processor modules."""

import shutil
import threading
from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

from watermark_pipeline.core import (
    CopyError,
    EntryItem,
    EntryResult,
    FileErrorPolicy,
    FilesystemError,
    MetadataError,
    PipelineConfig,
    ProgressTracker,
    WatermarkConfig,
    build_watermark,
)
from watermark_pipeline.processors import (
    PROCESSORS,
    multithread_process_batch,
    serial_process_batch,
)
from watermark_pipeline.processors.common import (
    ProcessingContext,
    create_directory,
    create_work_items,
    discover_entries,
    process_single_file,
)
from watermark_pipeline.testing import create_test_image


def _item(name: str) -> EntryItem:
    return EntryItem(source_path=Path("in") / name, dest_path=Path("out") / name)


def _ok(item: EntryItem) -> EntryResult:
    return EntryResult(
        source_path=item.source_path, dest_path=item.dest_path, action="copy", success=True
    )


@pytest.fixture(scope="module")
def watermark():
    return build_watermark(WatermarkConfig())


def _context(watermark, total=1, policy=FileErrorPolicy.SKIP):
    return ProcessingContext(
        watermark=watermark,
        progress=ProgressTracker(total),
        on_file_error=policy,
    )


@pytest.mark.parametrize("process_batch", [serial_process_batch, multithread_process_batch])
class TestProcessBatch:
    """Tests shared by every processor implementation."""

    def test_empty_batch(self, process_batch):
        """Test that an empty batch yields no results."""
        assert process_batch([], _ok, 4) == []

    def test_every_item_is_processed_once(self, process_batch):
        """Test that each item reaches the worker exactly once."""
        batch = [_item(f"{i}.jpg") for i in range(20)]
        seen = []
        lock = threading.Lock()

        def worker(item):
            with lock:
                seen.append(item.source_path)
            return _ok(item)

        results = process_batch(batch, worker, 4)

        assert len(results) == 20
        assert sorted(seen) == sorted(item.source_path for item in batch)

    def test_fatal_error_propagates(self, process_batch):
        """Test that a pipeline error raised by a worker aborts the batch."""
        batch = [_item(f"{i}.txt") for i in range(5)]

        def worker(item):
            if item.source_path.name == "2.txt":
                raise CopyError("copy failed")
            return _ok(item)

        with pytest.raises(CopyError):
            process_batch(batch, worker, 2)

    def test_unexpected_error_becomes_failed_result(self, process_batch):
        """Test that non-pipeline exceptions are turned into failed results."""
        batch = [
            _item("a.txt"),
            EntryItem(source_path=Path("in/b.jpg"), dest_path=Path("out/b.jpg"), eligible=True),
            EntryItem(source_path=Path("in/c"), dest_path=Path("out/c"), is_dir=True),
        ]

        def worker(item):
            if item.source_path.name != "a.txt":
                raise RuntimeError("boom")
            return _ok(item)

        results = process_batch(batch, worker, 2)

        failed = {r.source_path.name: r for r in results if not r.success}
        assert len(results) == 3
        assert set(failed) == {"b.jpg", "c"}
        assert failed["b.jpg"].action == "watermark"
        assert failed["c"].action == "directory"
        assert all(r.error == "boom" for r in failed.values())


class TestSerialProcessor:
    """Tests specific to the serial processor."""

    def test_preserves_order(self):
        """Test that results come back in batch order."""
        batch = [_item("first.jpg"), _item("second.jpg"), _item("third.jpg")]
        results = serial_process_batch(batch, _ok)
        assert [r.source_path.name for r in results] == ["first.jpg", "second.jpg", "third.jpg"]


class TestMultithreadProcessor:
    """Tests specific to the multithreaded processor."""

    def test_uses_several_threads(self):
        """Test that work is spread over worker threads."""
        barrier = threading.Barrier(2, timeout=5)
        names = set()

        def worker(item):
            barrier.wait()
            names.add(threading.current_thread().name)
            return _ok(item)

        multithread_process_batch([_item("a.jpg"), _item("b.jpg")], worker, 2)
        assert len(names) == 2

    def test_processors_registry(self):
        """Test the name -> processor mapping."""
        assert PROCESSORS["serial"][1] is serial_process_batch
        assert PROCESSORS["multithread"][1] is multithread_process_batch


class TestDiscoverEntries:
    """Tests for discover_entries."""

    def test_root_is_first_entry(self, tmp_path):
        """Test that the input directory itself is listed as a directory."""
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "a.txt").write_text("a")
        (tmp_path / "b.txt").write_text("b")

        entries = discover_entries(tmp_path)

        assert entries[0] == (tmp_path, True)
        assert sorted(entries) == sorted(
            [
                (tmp_path, True),
                (tmp_path / "sub", True),
                (tmp_path / "b.txt", False),
                (tmp_path / "sub" / "a.txt", False),
            ]
        )

    def test_walk_error_is_fatal(self, tmp_path):
        """Test that a listing failure raises FilesystemError."""
        with patch("watermark_pipeline.processors.common.os.walk") as mock_walk:
            def failing_walk(top, onerror=None):
                onerror(PermissionError(13, "Permission denied", str(top)))
                return iter(())

            mock_walk.side_effect = failing_walk
            with pytest.raises(FilesystemError):
                discover_entries(tmp_path)


class TestWorkers:
    """Tests for the per-entry workers."""

    def test_create_directory(self, tmp_path, watermark):
        """Test that nested destination directories are created."""
        context = _context(watermark)
        dest = tmp_path / "out" / "a" / "b"
        result = create_directory(
            EntryItem(source_path=tmp_path / "a" / "b", dest_path=dest, is_dir=True), context
        )
        assert dest.is_dir()
        assert result.success and result.action == "directory"
        assert context.progress.count == 1

    def test_create_directory_failure_is_fatal(self, tmp_path, watermark):
        """Test that a directory that cannot be created raises FilesystemError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        item = EntryItem(source_path=tmp_path, dest_path=blocker / "sub", is_dir=True)
        with pytest.raises(FilesystemError):
            create_directory(item, _context(watermark))

    def test_eligible_file_is_watermarked(self, tmp_path, watermark):
        """Test that eligible images are composited."""
        src = tmp_path / "photo.jpg"
        src.write_bytes(create_test_image(fmt="JPEG"))
        dst = tmp_path / "out.jpg"
        context = _context(watermark)

        result = process_single_file(
            EntryItem(source_path=src, dest_path=dst, eligible=True), context
        )

        assert result.action == "watermark"
        assert result.success is True
        assert result.metadata_preserved is True
        assert dst.read_bytes() != src.read_bytes()
        assert context.progress.count == 1

    def test_ineligible_file_is_copied(self, tmp_path, watermark):
        """Test that other files are copied byte-for-byte."""
        src = tmp_path / "notes.txt"
        src.write_bytes(b"\x00\x01 some bytes")
        dst = tmp_path / "copy.txt"

        result = process_single_file(EntryItem(source_path=src, dest_path=dst), _context(watermark))

        assert result.action == "copy"
        assert result.success is True
        assert dst.read_bytes() == src.read_bytes()

    def test_decode_failure_is_recorded(self, tmp_path, watermark):
        """Test that an undecodable image is reported without raising."""
        src = tmp_path / "broken.png"
        src.write_bytes(b"not a png")
        context = _context(watermark)

        result = process_single_file(
            EntryItem(source_path=src, dest_path=tmp_path / "out.png", eligible=True), context
        )

        assert result.success is False
        assert "decode" in result.error.lower()
        assert context.progress.count == 1

    def test_copy_failure_skip_policy(self, tmp_path, watermark):
        """Test that copy failures are recorded under the SKIP policy."""
        src = tmp_path / "notes.txt"
        src.write_text("x")
        item = EntryItem(source_path=src, dest_path=tmp_path / "missing" / "notes.txt")

        result = process_single_file(item, _context(watermark, policy=FileErrorPolicy.SKIP))

        assert result.success is False
        assert "Unable to copy" in result.error

    def test_copy_failure_abort_policy(self, tmp_path, watermark):
        """Test that copy failures raise CopyError under the ABORT policy."""
        src = tmp_path / "notes.txt"
        src.write_text("x")
        item = EntryItem(source_path=src, dest_path=tmp_path / "out.txt")

        with patch.object(shutil, "copyfile", side_effect=OSError("disk full")):
            with pytest.raises(CopyError):
                process_single_file(item, _context(watermark, policy=FileErrorPolicy.ABORT))

    def test_metadata_failure_keeps_watermarked_output(self, tmp_path, watermark):
        """Test that a metadata failure keeps the composited pixels and is recorded."""
        src = tmp_path / "photo.jpg"
        src.write_bytes(create_test_image(fmt="JPEG"))
        dst = tmp_path / "out.jpg"
        context = _context(watermark)

        with patch(
            "watermark_pipeline.processors.common.transplant_metadata",
            side_effect=MetadataError("boom"),
        ):
            result = process_single_file(
                EntryItem(source_path=src, dest_path=dst, eligible=True), context
            )

        assert result.success is True
        assert result.metadata_preserved is False
        assert result.error == "boom"
        with Image.open(dst) as out:
            assert out.size == (500, 500)
        assert context.progress.count == 1


class TestCreateWorkItems:
    """Tests for create_work_items."""

    def test_files_are_classified(self, tmp_path):
        """Test that work items carry their destination and eligibility."""
        config = PipelineConfig(input_dir=tmp_path / "in", output_dir=tmp_path / "out")
        entries = [
            (tmp_path / "in", True),
            (tmp_path / "in" / ".hidden", True),
            (tmp_path / "in" / "photo.JPG", False),
            (tmp_path / "in" / "background.png", False),
            (tmp_path / "in" / ".hidden" / "secret.jpg", False),
            (tmp_path / "in" / "notes.txt", False),
        ]

        directories, files = create_work_items(entries, config)

        assert [d.dest_path for d in directories] == [tmp_path / "out", tmp_path / "out" / ".hidden"]
        assert all(d.action == "directory" for d in directories)
        assert {f.source_path.name: f.action for f in files} == {
            "photo.JPG": "watermark",
            "background.png": "copy",
            "secret.jpg": "copy",
            "notes.txt": "copy",
        }
