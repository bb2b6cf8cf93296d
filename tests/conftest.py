import io
import stat
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from image_ocr.config import Settings


@pytest.fixture()
def scratch_dir(tmp_path: Path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture()
def settings(scratch_dir: Path) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, scratch_dir=scratch_dir, backend_timeout_seconds=5)


def _image_bytes(fmt: str) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (32, 16), color="white").save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG")


@pytest.fixture()
def bmp_bytes() -> bytes:
    return _image_bytes("BMP")


@pytest.fixture()
def ppm_bytes() -> bytes:
    """An image format with no signature of its own in the sniffer table."""
    return _image_bytes("PPM")


@pytest.fixture()
def fake_recognizer(tmp_path: Path) -> Callable[[str], Path]:
    """Write an executable /bin/sh script that stands in for the tesseract binary."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(body: str, name: str = "fake-tesseract") -> Path:
        script = bin_dir / name
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make
