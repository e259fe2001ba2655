"""
Tests for the LibreOffice engine adapter.

A small shell script plays the part of soffice: it understands --outdir and
writes <input stem>.pdf there, which is all the adapter relies on.
"""

import asyncio
import logging
import stat
import sys
from pathlib import Path

import pytest

from doc2pdf.core.logging import correlated
from doc2pdf.services import libreoffice
from doc2pdf.services.libreoffice import ConversionError, LibreOfficeEngine
from doc2pdf.storage.local import LocalStorage

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="fake engine is a POSIX shell script")

ARGUMENT_PARSER = """#!/bin/sh
outdir=""
input=""
while [ $# -gt 0 ]; do
  case "$1" in
    --outdir) outdir="$2"; shift 2 ;;
    -*) shift ;;
    *) input="$1"; shift ;;
  esac
done
name=$(basename "$input")
stem="${name%.*}"
"""


def _script(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "fake-soffice"
    path.write_text(ARGUMENT_PARSER + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def log():
    return correlated(logging.getLogger("tests.engine"), "eng-1")


@pytest.fixture
def storage(staging_dir):
    return LocalStorage(staging_dir)


def _run(engine, storage, log, data=b"document", suffix="docx"):
    async def go():
        with storage.staging(suffix) as area:
            area.write(data)
            return await engine.convert(area, ".pdf", log=log)

    return asyncio.run(go())


class TestCommand:
    def test_command_shape(self, storage):
        with storage.staging("docx") as area:
            cmd = LibreOfficeEngine.command("/usr/bin/soffice", area, ".pdf")

            assert cmd[0] == "/usr/bin/soffice"
            assert cmd[1] == f"-env:UserInstallation={area.profile_dir.as_uri()}"
            assert cmd[2:5] == ["--headless", "--convert-to", "pdf"]
            assert cmd[5:7] == ["--outdir", str(area.output_dir)]
            assert cmd[7] == str(area.input_path)

    def test_filter_is_appended_to_target(self, storage):
        with storage.staging("docx") as area:
            cmd = LibreOfficeEngine.command("soffice", area, ".pdf", "writer_pdf_Export")

        assert cmd[4] == "pdf:writer_pdf_Export"


class TestResolveBinary:
    def test_explicit_binary(self, tmp_path):
        binary = tmp_path / "soffice"
        binary.write_text("")
        assert LibreOfficeEngine(binary).resolve_binary() == str(binary)

    def test_explicit_binary_missing(self, tmp_path, monkeypatch):
        monkeypatch.setattr(libreoffice.shutil, "which", lambda name: "/usr/bin/soffice")
        assert LibreOfficeEngine(tmp_path / "nope").resolve_binary() is None

    def test_found_on_path(self, monkeypatch):
        monkeypatch.setattr(
            libreoffice.shutil,
            "which",
            lambda name: "/opt/bin/libreoffice" if name == "libreoffice" else None,
        )
        assert LibreOfficeEngine().resolve_binary() == "/opt/bin/libreoffice"

    def test_found_in_known_location(self, tmp_path, monkeypatch):
        binary = tmp_path / "soffice"
        binary.write_text("")
        monkeypatch.setattr(libreoffice.shutil, "which", lambda name: None)
        monkeypatch.setattr(libreoffice, "KNOWN_LOCATIONS", {sys.platform: [str(tmp_path / "missing"), str(binary)]})

        engine = LibreOfficeEngine()
        assert engine.resolve_binary() == str(binary)
        assert engine.available() is True

    def test_not_found(self, monkeypatch):
        monkeypatch.setattr(libreoffice.shutil, "which", lambda name: None)
        monkeypatch.setattr(libreoffice, "KNOWN_LOCATIONS", {})
        assert LibreOfficeEngine().available() is False


@posix_only
class TestConvert:
    def test_success_returns_output_bytes(self, tmp_path, storage, log):
        script = _script(tmp_path, "printf '%%PDF-1.4 fake' > \"$outdir/$stem.pdf\"\n")

        result = _run(LibreOfficeEngine(script), storage, log)

        assert result == b"%PDF-1.4 fake"

    def test_nonzero_exit_raises_with_stderr(self, tmp_path, storage, log):
        script = _script(tmp_path, "echo 'source file could not be loaded' >&2\nexit 3\n")

        with pytest.raises(ConversionError, match="source file could not be loaded"):
            _run(LibreOfficeEngine(script), storage, log)

    def test_missing_output_raises(self, tmp_path, storage, log):
        script = _script(tmp_path, "exit 0\n")

        with pytest.raises(ConversionError, match="without writing an output file"):
            _run(LibreOfficeEngine(script), storage, log)

    def test_timeout_raises(self, tmp_path, storage, log):
        script = _script(tmp_path, "sleep 5\n")

        with pytest.raises(ConversionError, match="timed out"):
            _run(LibreOfficeEngine(script, timeout=0.2), storage, log)

    def test_missing_binary_raises(self, tmp_path, storage, log):
        with pytest.raises(ConversionError, match="not found"):
            _run(LibreOfficeEngine(tmp_path / "absent"), storage, log)

    def test_private_profile_and_home(self, tmp_path, storage, log):
        script = _script(
            tmp_path,
            "printf '%%PDF-1.4 %s' \"$HOME\" > \"$outdir/$stem.pdf\"\n",
        )

        async def go():
            with storage.staging("docx") as area:
                area.write(b"document")
                result = await LibreOfficeEngine(script).convert(area, ".pdf", log=log)
                return area.root, result

        root, result = asyncio.run(go())

        assert result == f"%PDF-1.4 {root}".encode()

    def test_output_is_read_in_a_worker_thread(self, tmp_path, storage, log, monkeypatch):
        script = _script(tmp_path, "printf '%%PDF-1.4 fake' > \"$outdir/$stem.pdf\"\n")
        offloaded = []
        to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(getattr(func, "__name__", None))
            return await to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

        assert _run(LibreOfficeEngine(script), storage, log) == b"%PDF-1.4 fake"
        assert offloaded == ["read_bytes"]

    def test_unreadable_output_raises(self, tmp_path, storage, log, monkeypatch):
        script = _script(tmp_path, "printf '%%PDF-1.4 fake' > \"$outdir/$stem.pdf\"\n")

        async def failing_to_thread(func, *args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(asyncio, "to_thread", failing_to_thread)

        with pytest.raises(ConversionError, match="could not read engine output") as excinfo:
            _run(LibreOfficeEngine(script), storage, log)

        assert isinstance(excinfo.value.__cause__, OSError)
