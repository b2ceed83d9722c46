"""
Tests for the command line interface.
"""

import json

import pytest

from image_dedup.cli import create_parser, main, parse_arguments

from conftest import make_pattern_image


@pytest.fixture
def photos(temp_dir):
    root = temp_dir / "photos"
    (root / "sub").mkdir(parents=True)
    base = make_pattern_image(1)
    base.save(root / "a.png", 'PNG')
    base.save(root / "sub" / "a_copy.png", 'PNG')
    make_pattern_image(42).save(root / "other.png", 'PNG')
    (root / "broken.jpg").write_bytes(b"nope")
    return root


class TestArgParser:

    def test_scan_defaults(self):
        args = parse_arguments(['scan', '/photos'])
        assert args.command == 'scan'
        assert str(args.output) == 'hashes.json'
        assert args.algorithm is None
        assert args.threads is None
        assert not args.force

    def test_verbose_after_subcommand(self):
        args = parse_arguments(['find-dups', 'in.json', '-v', '-t', '3'])
        assert args.verbose
        assert args.threshold == 3

    def test_unknown_algorithm_rejected(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(['scan', '/photos', '-a', 'wavelet'])


class TestScanCommand:

    def test_scan_and_find_dups(self, user_config, photos, temp_dir, capsys):
        hashes = temp_dir / "out" / "hashes.json"
        assert main(['scan', str(photos), '-o', str(hashes), '--no-progress', '-t', '2']) == 0

        data = json.loads(hashes.read_text())
        assert data['scan_info']['algorithm'] == 'dct'
        assert data['scan_info']['total_files'] == 3
        assert "SCAN SUMMARY" in capsys.readouterr().out

        report = temp_dir / "dups.json"
        assert main(['find-dups', str(hashes), '-o', str(report), '-t', '0', '--no-progress']) == 0
        saved = json.loads(report.read_text())
        assert saved['total_groups'] == 1
        assert saved['threshold'] == 0
        paths = [f['file_path'] for f in saved['groups'][0]['files']]
        assert paths == [str(photos / "a.png"), str(photos / "sub" / "a_copy.png")]

        out = capsys.readouterr().out
        assert "[KEEP]" in out
        assert "[DUPE]" in out

    def test_algorithm_options(self, user_config, photos, temp_dir):
        hashes = temp_dir / "h.json"
        assert main([
            'scan', str(photos), '-o', str(hashes), '--no-progress',
            '-a', 'difference', '--hash-size', '12', '--batch-size', '1', '--buffer-size', '1',
        ]) == 0
        data = json.loads(hashes.read_text())
        assert data['scan_info']['algorithm'] == 'difference'
        assert data['scan_info']['parameters'] == {'size': 12}
        assert all(len(e['hash']) == 36 for e in data['images'])

    def test_refuses_to_overwrite(self, user_config, photos, temp_dir):
        hashes = temp_dir / "h.json"
        hashes.write_text("keep me")
        assert main(['scan', str(photos), '-o', str(hashes), '--no-progress']) == 1
        assert hashes.read_text() == "keep me"
        assert main(['scan', str(photos), '-o', str(hashes), '--no-progress', '--force']) == 0
        assert json.loads(hashes.read_text())['scan_info']['total_files'] == 3

    def test_missing_directory(self, user_config, temp_dir):
        assert main(['scan', str(temp_dir / "nope"), '-o', str(temp_dir / "h.json")]) == 1

    def test_invalid_settings(self, user_config, photos, temp_dir):
        hashes = temp_dir / "h.json"
        assert main(['scan', str(photos), '-o', str(hashes), '--hash-size', '65']) == 1
        assert main(['scan', str(photos), '-o', str(hashes), '-t', '0']) == 1
        assert not hashes.exists()

    def test_config_file_option(self, user_config, photos, temp_dir):
        config_path = temp_dir / "custom.json"
        config_path.write_text(json.dumps({'algorithm': 'average', 'hash_size': 4}))
        hashes = temp_dir / "h.json"
        assert main(['scan', str(photos), '-o', str(hashes), '--no-progress', '-c', str(config_path)]) == 0
        data = json.loads(hashes.read_text())
        assert data['scan_info']['algorithm'] == 'average'
        assert data['scan_info']['parameters'] == {'size': 4}

    def test_bad_config_file(self, user_config, photos, temp_dir):
        config_path = temp_dir / "custom.json"
        config_path.write_text("nope")
        assert main(['scan', str(photos), '-o', str(temp_dir / "h.json"), '-c', str(config_path)]) == 1


class TestFindDupsCommand:

    def test_missing_input(self, user_config, temp_dir):
        assert main(['find-dups', str(temp_dir / "missing.json"), '-o', str(temp_dir / "d.json")]) == 1

    def test_threshold_from_config(self, user_config, photos, temp_dir, monkeypatch):
        hashes = temp_dir / "h.json"
        assert main(['scan', str(photos), '-o', str(hashes), '--no-progress']) == 0
        monkeypatch.setenv('IMAGE_DEDUP_THRESHOLD', '0')
        report = temp_dir / "d.json"
        assert main(['find-dups', str(hashes), '-o', str(report), '--no-progress']) == 0
        assert json.loads(report.read_text())['threshold'] == 0


class TestConfigCommand:

    def test_show(self, user_config, capsys):
        assert main(['config']) == 0
        out = capsys.readouterr().out
        assert "not found" in out
        assert "algorithm: dct" in out

    def test_init(self, user_config, capsys):
        assert main(['config', '--init']) == 0
        assert user_config.config_file_path.exists()
        assert main(['config']) == 0
        assert "Status: found" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "image-dedup" in capsys.readouterr().out
