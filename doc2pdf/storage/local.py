import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional
from uuid import uuid4

from doc2pdf.core.config import get_settings


@dataclass
class StagingArea:
    """Per-request scratch directory holding the engine input, output and profile."""

    root: Path
    input_path: Path
    output_dir: Path
    profile_dir: Path

    def write(self, data: bytes) -> Path:
        self.input_path.write_bytes(data)
        return self.input_path


class LocalStorage:
    """Local disk staging for documents waiting on the conversion engine."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        settings = get_settings()
        self.temp_dir = Path(base_dir or settings.temp_dir).resolve()
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _normalise_suffix(suffix: str) -> str:
        return suffix if suffix.startswith(".") else f".{suffix}"

    def _create(self, suffix: str) -> StagingArea:
        root = self.temp_dir / uuid4().hex
        output_dir = root / "out"
        output_dir.mkdir(parents=True)
        return StagingArea(
            root=root,
            input_path=root / f"temp{self._normalise_suffix(suffix)}",
            output_dir=output_dir,
            profile_dir=root / "profile",
        )

    @contextmanager
    def staging(self, suffix: str) -> Iterator[StagingArea]:
        """Yield a fresh staging area; it is removed on exit, whatever happened."""
        area = self._create(suffix)
        try:
            yield area
        finally:
            self.cleanup([area.root])

    def cleanup(self, paths: Iterable[Path]) -> None:
        for path in paths:
            if not path or not path.exists():
                continue
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
            else:
                path.unlink(missing_ok=True)
