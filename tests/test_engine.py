"""
End-to-end tests for the processing engine.
"""

import json

import pytest
from PIL import Image

from image_dedup.errors import (
    ConfigurationError,
    DependencyInjectionError,
    FileDiscoveryError,
    ImageDedupError,
    PersistenceError,
    ScanCancelled,
    TaskError,
)
from image_dedup.factories import EngineFactory
from image_dedup.hashing import AverageHasher, DctHasher, HashSettings
from image_dedup.persistence import HashPersistence, MemoryHashPersistence, StreamingJsonHashPersistence
from image_dedup.pipeline import EngineState, ProcessingConfig, ProcessingEngine
from image_dedup.reporting import NoOpProgressReporter
from image_dedup.scanner import LocalStorageBackend, StandardImageLoader, process_single_file

from conftest import make_pattern_image, write_png_tree
from test_pipeline import RecordingReporter


def _engine(output, config=None, reporter=None, hasher=None, persistence=None, **kwargs):
    return ProcessingEngine(
        loader=StandardImageLoader(),
        hasher=hasher or DctHasher(8),
        storage=LocalStorageBackend(),
        config=config or ProcessingConfig(max_concurrent_tasks=4, channel_buffer_size=8, batch_size=5),
        reporter=reporter or NoOpProgressReporter(),
        persistence=persistence or StreamingJsonHashPersistence(output),
        **kwargs,
    )


def _load(path):
    with open(path, encoding='utf-8') as f:
        return json.load(f)


class TestScenarios:
    """The reference end-to-end scenarios."""

    def test_empty_directory(self, temp_dir):
        source = temp_dir / "empty"
        source.mkdir()
        output = temp_dir / "hashes.json"
        engine = _engine(output)

        summary = engine.process_directory(source)

        assert (summary.total_files, summary.processed_files, summary.error_count) == (0, 0, 0)
        assert summary.average_time_per_file_ms == 0.0
        data = _load(output)
        assert data['images'] == []
        assert data['scan_info']['total_files'] == 0
        assert engine.state is EngineState.DONE

    def test_identical_pngs_and_corrupted_png(self, temp_dir):
        source = temp_dir / "src"
        source.mkdir()
        pixel = Image.new('RGB', (1, 1), color=(200, 10, 10))
        for name in ("a.png", "b.png", "c.png"):
            pixel.save(source / name, 'PNG')
        (source / "readme.txt").write_text("ignored by discovery")
        (source / "broken.png").write_bytes(b"definitely not a png")
        output = temp_dir / "hashes.json"

        summary = _engine(output).process_directory(source)

        assert summary.total_files == 4
        assert summary.processed_files == 3
        assert summary.error_count == 1
        data = _load(output)
        assert len({entry['hash'] for entry in data['images']}) == 1
        assert data['scan_info']['total_files'] == 3

    def test_mixed_valid_and_broken(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 4)
        (source / "bad1.png").write_bytes(b"")
        (source / "bad2.png").write_bytes(b"\x89PNG\r\n\x1a\n garbage")
        output = temp_dir / "hashes.json"
        reporter = RecordingReporter()

        summary = _engine(output, reporter=reporter).process_directory(source)

        assert (summary.processed_files, summary.error_count) == (4, 2)
        data = _load(output)
        assert len(data['images']) == 4
        assert sorted(event[1] for event in reporter.of('error')) == sorted(
            [str(source / "bad1.png"), str(source / "bad2.png")]
        )

    def test_determinism(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 50, size=(24, 24))
        outputs = [temp_dir / "run1.json", temp_dir / "run2.json"]

        for output in outputs:
            _engine(output).process_directory(source)

        def comparable(path):
            images = sorted(_load(path)['images'], key=lambda e: e['file_path'])
            return [
                (e['file_path'], e['hash'], e['hash_bits'],
                 e['metadata']['image_dimensions'], e['metadata']['was_resized'])
                for e in images
            ]

        first, second = comparable(outputs[0]), comparable(outputs[1])
        assert len(first) == 50
        assert first == second

    def test_backpressure(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 1000, size=(8, 8))
        output = temp_dir / "hashes.json"
        config = ProcessingConfig(max_concurrent_tasks=2, channel_buffer_size=4, batch_size=50)
        engine = _engine(output, config=config, hasher=AverageHasher(8))

        summary = engine.process_directory(source)

        assert summary.processed_files == 1000
        assert summary.error_count == 0
        stats = engine.pipeline_stats
        assert 1 <= stats.peak_in_flight <= 2
        assert stats.peak_result_depth <= 4
        assert stats.peak_work_depth <= 4
        assert stats.files_sent == 1000
        assert stats.batches_written == 20
        assert _load(output)['scan_info']['total_files'] == 1000

    def test_double_finalize(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 12)
        output = temp_dir / "hashes.json"
        persistence = StreamingJsonHashPersistence(output)

        summary = _engine(output, persistence=persistence).process_directory(source)
        persistence.finalize()

        data = _load(output)
        assert len(data['images']) == summary.processed_files == 12
        assert data['scan_info']['total_files'] == 12


class TestEngineBehaviour:
    """State machine, configuration and failure handling."""

    def test_hash_bits_and_lengths(self, sample_images, temp_dir):
        output = temp_dir / "out.json"
        _engine(output, hasher=DctHasher(16)).process_directory(temp_dir)
        data = _load(output)
        assert data['scan_info']['algorithm'] == 'dct'
        assert data['scan_info']['parameters'] == {'size': 16, 'quality_factor': 1.0}
        for entry in data['images']:
            assert len(entry['hash']) == 64
            assert entry['hash_bits'] == int(entry['hash'][:16], 16)

    def test_processed_plus_errors_equals_discovered(self, sample_images, temp_dir):
        output = temp_dir / "out" / "hashes.json"
        summary = _engine(output).process_directory(temp_dir)
        assert summary.total_files == 7
        assert summary.processed_files + summary.error_count == summary.total_files
        assert summary.error_count == 1

    @pytest.mark.parametrize("config", [
        ProcessingConfig(max_concurrent_tasks=0),
        ProcessingConfig(batch_size=0),
        ProcessingConfig(channel_buffer_size=0),
    ])
    def test_invalid_config_fails_before_io(self, temp_dir, config):
        output = temp_dir / "hashes.json"
        engine = _engine(output, config=config)
        with pytest.raises(ConfigurationError):
            engine.process_directory(temp_dir)
        assert engine.state is EngineState.FAILED
        assert not output.exists()

    def test_missing_root(self, temp_dir):
        output = temp_dir / "hashes.json"
        engine = _engine(output)
        with pytest.raises(FileDiscoveryError):
            engine.process_directory(temp_dir / "nope")
        assert engine.state is EngineState.FAILED
        assert not output.exists()

    def test_single_shot(self, temp_dir):
        engine = _engine(temp_dir / "hashes.json")
        engine.process_directory(temp_dir)
        with pytest.raises(ImageDedupError):
            engine.process_directory(temp_dir)

    def test_reporter_events(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 3)
        reporter = RecordingReporter()
        _engine(temp_dir / "h.json", reporter=reporter).process_directory(source)
        kinds = [event[0] for event in reporter.events]
        assert kinds[0] == 'started'
        assert kinds[-1] == 'completed'
        assert reporter.of('started') == [('started', 3)]
        assert reporter.of('progress')[-1] == ('progress', 3, 3)
        assert reporter.of('completed') == [('completed', 3, 0)]

    def test_progress_reporting_disabled(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 3)
        (source / "bad.png").write_bytes(b"")
        reporter = RecordingReporter()
        config = ProcessingConfig(max_concurrent_tasks=2, enable_progress_reporting=False)
        _engine(temp_dir / "h.json", config=config, reporter=reporter).process_directory(source)
        assert [event[0] for event in reporter.events] == ['error']

    def test_memory_persistence(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 9)
        persistence = MemoryHashPersistence()
        _engine(None, persistence=persistence).process_directory(source)
        assert len(persistence.entries) == 9
        assert persistence.batch_sizes == [5, 4]
        assert persistence.finalize_calls == 2
        assert persistence.scan_info.total_files == 9

    def test_worker_crash_is_fatal_and_not_finalized(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 30)
        output = temp_dir / "hashes.json"
        persistence = StreamingJsonHashPersistence(output)

        def crashing(loader, hasher, file_path):
            if file_path.endswith("img_0010.png"):
                raise RuntimeError("decoder segfault")
            return process_single_file(loader, hasher, file_path)

        engine = _engine(output, persistence=persistence, process=crashing)
        with pytest.raises(TaskError) as exc_info:
            engine.process_directory(source)
        assert "decoder segfault" in str(exc_info.value)
        assert engine.state is EngineState.FAILED
        assert not persistence.is_finalized

    def test_persistence_failure_is_fatal(self, temp_dir):
        class FailingPersistence(HashPersistence):
            def set_scan_info(self, algorithm, parameters):
                pass

            def store_batch(self, batch):
                raise PersistenceError("disk full")

            def finalize(self):
                raise AssertionError("must not finalize after a failure")

        source = temp_dir / "src"
        write_png_tree(source, 20)
        engine = _engine(None, persistence=FailingPersistence())
        with pytest.raises(PersistenceError):
            engine.process_directory(source)
        assert engine.state is EngineState.FAILED

    def test_reporter_crash_becomes_task_error(self, temp_dir):
        class ExplodingReporter(RecordingReporter):
            def report_error(self, file_path, error):
                raise RuntimeError("reporter bug")

        source = temp_dir / "src"
        write_png_tree(source, 5)
        (source / "bad.png").write_bytes(b"")
        engine = _engine(temp_dir / "h.json", reporter=ExplodingReporter())
        with pytest.raises(TaskError) as exc_info:
            engine.process_directory(source)
        assert exc_info.value.task == "collector"

    def test_cancel_leaves_document_unfinalized(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 200, size=(8, 8))
        output = temp_dir / "hashes.json"
        persistence = StreamingJsonHashPersistence(output)

        class CancellingReporter(RecordingReporter):
            engine = None

            def report_progress(self, completed, total):
                super().report_progress(completed, total)
                self.engine.cancel()

        reporter = CancellingReporter()
        config = ProcessingConfig(max_concurrent_tasks=2, channel_buffer_size=2, batch_size=10)
        engine = _engine(output, config=config, reporter=reporter, persistence=persistence)
        reporter.engine = engine

        with pytest.raises(ScanCancelled):
            engine.process_directory(source)
        assert engine.state is EngineState.FAILED
        assert not persistence.is_finalized

    def test_finalize_after_cancel_keeps_written_entries(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 200, size=(8, 8))
        output = temp_dir / "hashes.json"
        persistence = StreamingJsonHashPersistence(output)

        class CancellingReporter(RecordingReporter):
            engine = None

            def report_progress(self, completed, total):
                super().report_progress(completed, total)
                self.engine.cancel()

        reporter = CancellingReporter()
        config = ProcessingConfig(max_concurrent_tasks=2, channel_buffer_size=2, batch_size=7)
        engine = _engine(output, config=config, reporter=reporter, persistence=persistence)
        reporter.engine = engine

        with pytest.raises(ScanCancelled):
            engine.process_directory(source)
        assert persistence.entries_written == engine.collector.processed
        assert persistence.entries_written >= 100

        persistence.finalize()
        data = _load(output)
        assert data['scan_info']['total_files'] == len(data['images']) == persistence.entries_written
        assert len({e['file_path'] for e in data['images']}) == len(data['images'])

    def test_collector_crash_flushes_pending_batch(self, temp_dir):
        class FailOnLastProgress(RecordingReporter):
            def report_progress(self, completed, total):
                if completed == total:
                    raise RuntimeError("progress sink gone")

        source = temp_dir / "src"
        write_png_tree(source, 12)
        output = temp_dir / "hashes.json"
        persistence = StreamingJsonHashPersistence(output)
        config = ProcessingConfig(max_concurrent_tasks=2, channel_buffer_size=4, batch_size=5)
        engine = _engine(output, config=config, reporter=FailOnLastProgress(), persistence=persistence)

        with pytest.raises(TaskError):
            engine.process_directory(source)
        assert engine.collector.processed == 12
        assert persistence.entries_written == 12
        assert not persistence.is_finalized

        persistence.finalize()
        data = _load(output)
        assert len(data['images']) == data['scan_info']['total_files'] == 12

    def test_cancel_after_last_result_still_completes(self, temp_dir):
        source = temp_dir / "src"
        write_png_tree(source, 6)
        output = temp_dir / "hashes.json"

        class LateCancel(RecordingReporter):
            engine = None

            def report_progress(self, completed, total):
                super().report_progress(completed, total)
                if completed == total:
                    self.engine.cancel()

        reporter = LateCancel()
        engine = _engine(output, reporter=reporter)
        reporter.engine = engine

        summary = engine.process_directory(source)
        assert summary.processed_files == 6
        assert engine.state is EngineState.DONE
        assert _load(output)['scan_info']['total_files'] == 6


class TestEngineFactory:
    """Test EngineFactory wiring."""

    def test_build_from_settings(self, temp_dir):
        engine = EngineFactory.build(
            output_path=temp_dir / "h.json",
            hash_settings=HashSettings(algorithm='difference', size=12),
            config=ProcessingConfig(max_concurrent_tasks=3),
            max_dimension=256,
            reporter=NoOpProgressReporter(),
        )
        description = EngineFactory.describe(engine)
        assert description['algorithm'] == 'difference'
        assert description['parameters'] == {'size': 12}
        assert description['max_dimension'] == 256
        assert description['persistence'] == 'StreamingJsonHashPersistence'
        assert description['config']['max_concurrent_tasks'] == 3

    def test_invalid_hash_settings(self, temp_dir):
        with pytest.raises(DependencyInjectionError):
            EngineFactory.build(
                output_path=temp_dir / "h.json",
                hash_settings=HashSettings(algorithm='dct', size=100),
            )

    def test_invalid_loader_settings(self, temp_dir):
        with pytest.raises(DependencyInjectionError):
            EngineFactory.build(output_path=temp_dir / "h.json", max_dimension=0)

    def test_missing_output(self):
        with pytest.raises(DependencyInjectionError):
            EngineFactory.build()

    def test_prebuilt_backends_used(self, temp_dir):
        persistence = MemoryHashPersistence()
        hasher = AverageHasher(4)
        engine = EngineFactory.build(hasher=hasher, persistence=persistence)
        assert engine.hasher is hasher
        assert engine.persistence is persistence

    def test_built_engine_runs(self, temp_dir):
        source = temp_dir / "src"
        source.mkdir()
        make_pattern_image(1).save(source / "a.png")
        output = temp_dir / "h.json"
        engine = EngineFactory.build(output_path=output, reporter=NoOpProgressReporter())
        summary = engine.process_directory(source)
        assert summary.processed_files == 1
        assert _load(output)['scan_info']['total_files'] == 1
