"""
Temp File Store for Generated Audio.

Generated MP3 files are staged in a single local directory between
synthesis and delivery. Nothing here is durable: every file is removed
shortly after it has been handed to a caller, and anything left behind
is swept once it is older than the configured age.

File Naming:
    {temp_dir}/audio_<epoch-ms>_<voice>.mp3

    If that name is already taken (same millisecond, same voice) a
    numeric suffix is appended: audio_<epoch-ms>_<voice>_1.mp3

Lifecycle:
    save()             atomic write (tmp file then rename)
    schedule_delete()  delayed delete after handoff (default 5s)
    sweep()            age-based bulk delete (default 1h, 0 = everything)

Delayed deletes are asyncio tasks whose handles are retained until they
finish, so shutdown can cancel them with cancel_pending() and then run
a final sweep(0).

Usage:
    store = TempFileStore("./temp")
    generated = store.save(mp3_bytes, voice="nova")
    ...hand generated.path to the caller...
    store.schedule_delete(generated)
"""
from __future__ import annotations

import asyncio
import contextlib
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from tta_bot.core.config import Defaults
from tta_bot.core.errors import CleanupError
from tta_bot.core.logging import get_logger, info, verbose, warn
from tta_bot.core.metrics import metrics
from tta_bot.utils.timeit import timeit

_LOG = get_logger("tta-bot.storage")


@dataclass(frozen=True)
class GeneratedFile:
    """
    A staged audio file.

    Attributes:
        path: Location in the temp directory.
        voice: Voice the audio was generated with.
        created_at: Unix timestamp of the write.
        size_bytes: File size.
    """
    path: Path
    voice: str
    created_at: float
    size_bytes: int

    @property
    def name(self) -> str:
        return self.path.name


FileRef = Union[GeneratedFile, Path, str]


def _to_path(ref: FileRef) -> Path:
    if isinstance(ref, GeneratedFile):
        return ref.path
    return Path(ref)


class TempFileStore:
    """
    Owns the temp directory and every file in it.

    All methods except save() are safe to call with references that no
    longer exist. Filesystem failures during deletion are logged and
    counted, never raised.
    """

    def __init__(
        self,
        base_dir: str | Path,
        max_age_s: float = Defaults.STORAGE_MAX_AGE_SECONDS,
        delete_delay_s: float = Defaults.STORAGE_DELETE_DELAY_SECONDS,
    ):
        self._base_dir = Path(base_dir)
        self._max_age_s = max_age_s
        self._delete_delay_s = delete_delay_s
        self._pending: Dict[asyncio.Task, Path] = {}
        self._sweeper: Optional[asyncio.Task] = None

        # Stats
        self._total_saved = 0
        self._total_deleted = 0
        self._total_bytes_freed = 0
        self._total_errors = 0

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def pending_count(self) -> int:
        """Number of delayed deletes not yet finished."""
        return len(self._pending)

    def ensure_dir(self) -> Path:
        """Create the temp directory (and parents) if absent."""
        self._base_dir.mkdir(parents=True, exist_ok=True)
        return self._base_dir

    def make_path(self, voice: str) -> Path:
        """
        Build a fresh file path for a voice.

        Args:
            voice: Voice identifier, used as the name discriminator.

        Returns:
            A path that does not exist yet.
        """
        stem = f"audio_{int(time.time() * 1000)}_{voice}"
        path = self._base_dir / f"{stem}.mp3"
        n = 0
        while path.exists():
            n += 1
            path = self._base_dir / f"{stem}_{n}.mp3"
        return path

    def save(self, data: bytes, voice: str) -> GeneratedFile:
        """
        Write audio bytes to a new file.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        self.ensure_dir()
        path = self.make_path(voice)

        with timeit("persist") as t:
            tmp = path.with_suffix(".tmp")
            try:
                tmp.write_bytes(data)
                tmp.replace(path)
            except OSError:
                with contextlib.suppress(OSError):
                    tmp.unlink()
                raise

        self._total_saved += 1
        info(_LOG, "persisted", file=path.name, bytes=len(data), seconds=round(t.seconds, 4))
        return GeneratedFile(path=path, voice=voice, created_at=time.time(), size_bytes=len(data))

    def _remove(self, path: Path) -> int:
        """
        Unlink one file.

        Returns:
            Bytes freed, or -1 if the file was already gone.

        Raises:
            CleanupError: If the file exists but cannot be removed.
        """
        try:
            size = path.stat().st_size
            path.unlink()
        except FileNotFoundError:
            return -1
        except OSError as e:
            raise CleanupError(str(e), {"file": path.name}) from e
        return size

    def delete(self, ref: FileRef, reason: str = "delayed") -> bool:
        """
        Delete a file if it is still present.

        Returns:
            True if a file was removed, False if it was already gone or
            could not be removed.
        """
        path = _to_path(ref)
        try:
            freed = self._remove(path)
        except CleanupError as e:
            self._total_errors += 1
            warn(_LOG, "cleanup_error", file=path.name, error=e.message)
            return False

        if freed < 0:
            verbose(_LOG, "already_deleted", file=path.name)
            return False

        self._total_deleted += 1
        self._total_bytes_freed += freed
        metrics.record_deleted(reason)
        info(_LOG, "deleted", file=path.name, reason=reason)
        return True

    def sweep(self, max_age_s: Optional[float] = None) -> Dict[str, int]:
        """
        Delete every regular file older than max_age_s.

        Args:
            max_age_s: Age threshold in seconds. Defaults to the store's
                max age. 0 deletes everything regardless of mtime.

        Returns:
            Dict with 'files_removed', 'bytes_freed' and 'errors'.
        """
        max_age = self._max_age_s if max_age_s is None else max_age_s
        result = {"files_removed": 0, "bytes_freed": 0, "errors": 0}

        if not self._base_dir.is_dir():
            return result

        now = time.time()
        try:
            entries = list(self._base_dir.iterdir())
        except OSError as e:
            warn(_LOG, "sweep_error", error=str(e))
            result["errors"] += 1
            return result

        for entry in entries:
            try:
                st = entry.stat()
                if not entry.is_file():
                    continue
                if max_age > 0 and now - st.st_mtime <= max_age:
                    continue
                freed = self._remove(entry)
            except FileNotFoundError:
                continue
            except (CleanupError, OSError) as e:
                result["errors"] += 1
                verbose(_LOG, "cleanup_file_error", file=entry.name, error=str(e))
                continue
            if freed >= 0:
                result["files_removed"] += 1
                result["bytes_freed"] += freed

        self._total_deleted += result["files_removed"]
        self._total_bytes_freed += result["bytes_freed"]
        self._total_errors += result["errors"]
        metrics.record_deleted("sweep", result["files_removed"])

        if result["files_removed"] or result["errors"]:
            info(_LOG, "sweep", max_age_s=max_age, **result)
        return result

    def schedule_delete(self, ref: FileRef, delay_s: Optional[float] = None) -> asyncio.Task:
        """
        Delete a file after a delay, without blocking the caller.

        Must be called from a running event loop. The task handle stays in
        the pending table until the delete has run or been cancelled.
        """
        path = _to_path(ref)
        delay = self._delete_delay_s if delay_s is None else delay_s

        async def _delete_later() -> None:
            await asyncio.sleep(delay)
            self.delete(path, reason="delayed")

        task = asyncio.get_running_loop().create_task(_delete_later(), name=f"delete:{path.name}")
        self._pending[task] = path
        task.add_done_callback(self._forget)
        metrics.set_pending_deletes(len(self._pending))
        verbose(_LOG, "delete_scheduled", file=path.name, delay_s=delay)
        return task

    def _forget(self, task: asyncio.Task) -> None:
        self._pending.pop(task, None)
        metrics.set_pending_deletes(len(self._pending))

    def cancel_pending(self) -> int:
        """
        Cancel every delayed delete that has not run yet.

        Returns:
            Number of tasks cancelled.
        """
        tasks = [t for t in self._pending if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            info(_LOG, "pending_deletes_cancelled", count=len(tasks))
        return len(tasks)

    def start_sweeper(self, interval_s: float = Defaults.STORAGE_SWEEP_INTERVAL_SECONDS) -> asyncio.Task:
        """Start the recurring sweep task. Calling it twice is a no-op."""
        if self._sweeper is not None and not self._sweeper.done():
            return self._sweeper

        async def _run() -> None:
            while True:
                await asyncio.sleep(interval_s)
                self.sweep()

        self._sweeper = asyncio.get_running_loop().create_task(_run(), name="temp-sweeper")
        info(_LOG, "sweeper_started", interval_s=interval_s, max_age_s=self._max_age_s)
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    def get_stats(self) -> Dict[str, int]:
        """Get lifetime counters for this store."""
        return {
            "total_files_saved": self._total_saved,
            "total_files_deleted": self._total_deleted,
            "total_bytes_freed": self._total_bytes_freed,
            "total_errors": self._total_errors,
        }

    def get_storage_info(self) -> Dict[str, Any]:
        """
        Get information about current temp directory usage.

        Returns:
            Dict with temp_dir, file_count, total_bytes, oldest_file_age
        """
        file_count = 0
        total_bytes = 0
        oldest_mtime = time.time()

        if self._base_dir.is_dir():
            try:
                for entry in self._base_dir.iterdir():
                    try:
                        st = entry.stat()
                    except OSError:
                        continue
                    if not entry.is_file():
                        continue
                    file_count += 1
                    total_bytes += st.st_size
                    oldest_mtime = min(oldest_mtime, st.st_mtime)
            except OSError as e:
                warn(_LOG, "storage_info_error", error=str(e))

        return {
            "temp_dir": str(self._base_dir),
            "file_count": file_count,
            "total_bytes": total_bytes,
            "oldest_file_age": int(time.time() - oldest_mtime) if file_count else 0,
        }
