from __future__ import annotations

import gzip
import logging.handlers
import os
import re
import shutil
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterator, Tuple


class DailyRotatingFileHandler(logging.handlers.BaseRotatingHandler):
    """File handler writing to ``<prefix>-YYYY-MM-DD.log``.

    A new file is started on the first record of a new day, or earlier once the
    current file would grow past ``max_bytes``; same-day overflow files get a
    numeric suffix (``.log.1``, ``.log.2``, ...). Finished files are gzipped when
    ``compress`` is set, and files dated more than ``retention_days`` ago are
    removed on start-up and after every rotation.
    """

    def __init__(
        self,
        directory: os.PathLike | str,
        prefix: str = "application",
        *,
        max_bytes: int = 0,
        retention_days: int = 0,
        compress: bool = True,
        encoding: str = "utf-8",
    ) -> None:
        self.directory = Path(directory).resolve()
        self.directory.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix
        self.max_bytes = max_bytes
        self.retention_days = retention_days
        self.compress = compress
        self._pattern = re.compile(
            rf"^{re.escape(prefix)}-(\d{{4}}-\d{{2}}-\d{{2}})\.log(?:\.(\d+))?(?:\.gz)?$"
        )

        self.current_date = self._today()
        self.index = self._resume_index(self.current_date)
        super().__init__(
            os.fspath(self._path_for(self.current_date, self.index)),
            mode="a",
            encoding=encoding,
            delay=True,
        )
        self.prune()

    # ------------------------------------------------------------------
    def _today(self) -> date:
        return datetime.now().date()

    def _path_for(self, day: date, index: int) -> Path:
        name = f"{self.prefix}-{day.isoformat()}.log"
        if index:
            name = f"{name}.{index}"
        return self.directory / name

    def _scan(self) -> Iterator[Tuple[Path, date, int]]:
        for path in self.directory.iterdir():
            match = self._pattern.match(path.name)
            if match and path.is_file():
                yield path, date.fromisoformat(match.group(1)), int(match.group(2) or 0)

    def _indices(self, day: date) -> set[int]:
        return {index for _, found, index in self._scan() if found == day}

    def _resume_index(self, day: date) -> int:
        # Keep appending to today's newest uncompressed file after a restart.
        indices = self._indices(day)
        if not indices:
            return 0
        newest = max(indices)
        if self._path_for(day, newest).exists():
            return newest
        return newest + 1

    def _next_index(self, day: date) -> int:
        return max(self._indices(day), default=-1) + 1

    # ------------------------------------------------------------------
    def shouldRollover(self, record: logging.LogRecord) -> bool:
        if self._today() != self.current_date:
            return True
        if self.max_bytes > 0:
            if self.stream is None:
                self.stream = self._open()
            msg = "%s\n" % self.format(record)
            self.stream.seek(0, 2)
            position = self.stream.tell()
            # never rotate away an empty file, even for an oversized record
            if position and position + len(msg.encode(self.encoding or "utf-8")) > self.max_bytes:
                return True
        return False

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None

        finished = Path(self.baseFilename)
        if self.compress and finished.exists():
            self.archive(finished)

        today = self._today()
        if today != self.current_date:
            self.current_date = today
            self.index = self._resume_index(today)
        else:
            self.index = self._next_index(today)

        self.baseFilename = os.fspath(self._path_for(self.current_date, self.index))
        self.prune()

    def archive(self, path: Path) -> Path:
        target = path.with_name(f"{path.name}.gz")
        with path.open("rb") as source, gzip.open(target, "wb") as sink:
            shutil.copyfileobj(source, sink)
        path.unlink()
        return target

    def prune(self) -> None:
        if self.retention_days <= 0:
            return
        cutoff = self._today() - timedelta(days=self.retention_days)
        active = Path(self.baseFilename)
        for path, day, _ in list(self._scan()):
            if day < cutoff and path != active:
                path.unlink(missing_ok=True)
