"""
Tests for duplicate grouping over scan documents.
"""

import json

import pytest

from image_dedup.errors import ConfigurationError, PersistenceError
from image_dedup.grouping import (
    algorithm_from_scan_info,
    build_duplicate_report,
    find_duplicate_groups,
    find_duplicates_in_scan,
    save_duplicate_report,
)
from image_dedup.hashing import HashAlgorithm, HashKind
from image_dedup.models import HashEntry, ProcessingMetadata, ScanInfo, ScanResult

ALGORITHM = HashAlgorithm.dct(8)


def _entry(path, hash_hex):
    return HashEntry(
        file_path=path,
        hash=hash_hex,
        hash_bits=int(hash_hex, 16),
        metadata=ProcessingMetadata(10, 1, (8, 8), False),
    )


class TestAlgorithmFromScanInfo:

    def test_roundtrip(self):
        info = ScanInfo(algorithm='difference', parameters={'size': 12})
        assert algorithm_from_scan_info(info) == HashAlgorithm(HashKind.DIFFERENCE, 12)

    def test_unknown_algorithm(self):
        with pytest.raises(ConfigurationError):
            algorithm_from_scan_info(ScanInfo(algorithm='wavelet', parameters={'size': 8}))

    def test_missing_size(self):
        with pytest.raises(ConfigurationError):
            algorithm_from_scan_info(ScanInfo(algorithm='dct'))


class TestFindDuplicateGroups:
    """Test Union-Find grouping."""

    def test_exact_matches_grouped(self):
        entries = [
            _entry('/b.png', 'ff00ff00ff00ff00'),
            _entry('/a.png', 'ff00ff00ff00ff00'),
            _entry('/c.png', '0123456789abcdef'),
        ]
        groups = find_duplicate_groups(entries, ALGORITHM, threshold=0)
        assert len(groups) == 1
        assert [f.file_path for f in groups[0].files] == ['/a.png', '/b.png']
        assert [f.distance for f in groups[0].files] == [0, 0]

    def test_threshold_boundary(self):
        entries = [
            _entry('/a.png', '0000000000000000'),
            _entry('/b.png', '0000000000000007'),  # 3 bits away
        ]
        assert find_duplicate_groups(entries, ALGORITHM, threshold=2) == []
        groups = find_duplicate_groups(entries, ALGORITHM, threshold=3)
        assert groups[0].files[1].distance == 3

    def test_transitive(self):
        entries = [
            _entry('/a.png', '0000000000000000'),
            _entry('/b.png', '000000000000000f'),  # 4 from a
            _entry('/c.png', '00000000000000ff'),  # 4 from b, 8 from a
        ]
        groups = find_duplicate_groups(entries, ALGORITHM, threshold=4)
        assert len(groups) == 1
        assert [f.distance for f in groups[0].files] == [0, 4, 8]

    def test_groups_ordered_and_numbered(self):
        entries = [
            _entry('/z1.png', 'ffffffffffffffff'),
            _entry('/z2.png', 'ffffffffffffffff'),
            _entry('/m1.png', '0000000000000000'),
            _entry('/m2.png', '0000000000000000'),
            _entry('/lonely.png', '00000000ffffffff'),
        ]
        groups = find_duplicate_groups(entries, ALGORITHM, threshold=1)
        assert [g.group_id for g in groups] == [0, 1]
        assert [g.files[0].file_path for g in groups] == ['/m1.png', '/z1.png']
        assert all(g.file_count == 2 for g in groups)

    def test_no_entries(self):
        assert find_duplicate_groups([], ALGORITHM, threshold=5) == []

    def test_negative_threshold(self):
        with pytest.raises(ConfigurationError):
            find_duplicate_groups([], ALGORITHM, threshold=-1)

    def test_progress_callback(self):
        entries = [_entry(f'/{i}.png', f'{i:016x}') for i in range(150)]
        calls = []
        find_duplicate_groups(
            entries, ALGORITHM, threshold=0,
            progress_callback=lambda current, total: calls.append((current, total)),
        )
        total = 150 * 149 // 2
        assert calls == [(10000, total)]


class TestScanLevel:

    def test_find_duplicates_in_scan(self):
        scan = ScanResult(
            scan_info=ScanInfo(algorithm='dct', parameters={'size': 8, 'quality_factor': 1.0}),
            images=[
                _entry('/a.png', 'abcdefabcdefabcd'),
                _entry('/b.png', 'abcdefabcdefabcc'),
            ],
        )
        groups = find_duplicates_in_scan(scan, threshold=1)
        assert len(groups) == 1
        assert groups[0].duplicates[0].file_path == '/b.png'

    def test_empty_scan_skips_header_validation(self):
        assert find_duplicates_in_scan(ScanResult(scan_info=ScanInfo(algorithm='')), 5) == []

    def test_report(self, temp_dir):
        entries = [
            _entry('/a.png', '0000000000000000'),
            _entry('/b.png', '0000000000000000'),
            _entry('/c.png', '0000000000000001'),
        ]
        groups = find_duplicate_groups(entries, ALGORITHM, threshold=1)
        report = build_duplicate_report(groups, 1)
        assert report['total_groups'] == 1
        assert report['total_duplicates'] == 2
        assert report['threshold'] == 1

        path = temp_dir / "reports" / "dups.json"
        save_duplicate_report(groups, 1, path)
        saved = json.loads(path.read_text())
        assert saved == report
        assert saved['groups'][0]['files'][2] == {
            'file_path': '/c.png', 'hash': '0000000000000001', 'distance': 1,
        }

    def test_report_unwritable(self, temp_dir):
        blocker = temp_dir / "file"
        blocker.write_text("x")
        with pytest.raises(PersistenceError):
            save_duplicate_report([], 5, blocker / "dups.json")
