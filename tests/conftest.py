"""
Pytest configuration and shared fixtures for test suite.
"""

import os
import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from image_dedup.user_config import get_user_config


def make_pattern_image(seed: int, size: tuple[int, int] = (64, 64)) -> Image.Image:
    """Deterministic blocky noise image; different seeds give unrelated images."""
    rng = np.random.default_rng(seed)
    blocks = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
    small = Image.fromarray(blocks, 'RGB')
    return small.resize(size, Image.NEAREST)


def write_png_tree(root: Path, count: int, size: tuple[int, int] = (16, 16)) -> list[Path]:
    """Write ``count`` small distinct PNGs spread over a few subdirectories."""
    paths = []
    for index in range(count):
        subdir = root / f"dir{index % 4}"
        subdir.mkdir(parents=True, exist_ok=True)
        path = subdir / f"img_{index:04d}.png"
        make_pattern_image(index, size).save(path, 'PNG')
        paths.append(path)
    return paths


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def sample_images(temp_dir):
    """
    Create a set of sample images for testing.

    Returns:
        dict with paths to:
        - identical1.png, identical2.png (same pixels)
        - pattern_large.png (identical1 content at 4x the resolution)
        - unique.png (unrelated image)
        - photo.jpg (another unrelated image, JPEG)
        - notes.txt (not an image, filtered by discovery)
        - corrupted.png (image extension, invalid content)
        - nested/deep.gif (image in a subdirectory)
    """
    images = {}

    base = make_pattern_image(1)
    path1 = temp_dir / "identical1.png"
    base.save(path1, 'PNG')
    images['identical1'] = str(path1)

    path2 = temp_dir / "identical2.png"
    base.save(path2, 'PNG')
    images['identical2'] = str(path2)

    path3 = temp_dir / "pattern_large.png"
    base.resize((256, 256), Image.NEAREST).save(path3, 'PNG')
    images['pattern_large'] = str(path3)

    path4 = temp_dir / "unique.png"
    make_pattern_image(99).save(path4, 'PNG')
    images['unique'] = str(path4)

    path5 = temp_dir / "photo.jpg"
    make_pattern_image(7).save(path5, 'JPEG', quality=95)
    images['photo'] = str(path5)

    path6 = temp_dir / "notes.txt"
    path6.write_text("not an image")
    images['notes'] = str(path6)

    path7 = temp_dir / "corrupted.png"
    path7.write_bytes(b"\x89PNG\r\n\x1a\nthis is not really a png")
    images['corrupted'] = str(path7)

    nested = temp_dir / "nested"
    nested.mkdir()
    path8 = nested / "deep.gif"
    make_pattern_image(3).convert('P').save(path8, 'GIF')
    images['deep'] = str(path8)

    return images


@pytest.fixture
def user_config(temp_dir, monkeypatch):
    """The UserConfig singleton pointed at an empty config directory, env cleared."""
    for key in list(os.environ):
        if key.startswith('IMAGE_DEDUP_'):
            monkeypatch.delenv(key, raising=False)
    config_dir = temp_dir / "config"
    monkeypatch.setenv('IMAGE_DEDUP_CONFIG_DIR', str(config_dir))
    config = get_user_config()
    config.use_config_file(None)
    yield config
    config.use_config_file(None)
