"""
Journal access for knocker-monitor.

This module provides the two log collaborators the monitor depends on: a
bounded backlog query and a continuous, closable stream of new records.
Records are handed out raw (one JSON line each); parsing happens in
:mod:`knocker_monitor.parsers.entry_parser`.
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import List, Optional, Tuple, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .errors import QueryFailure, StreamOpenFailure, StreamReadFailure
from ..config.settings import Settings


RawRecord = Union[str, bytes]


class RecordStream(ABC):
    """
    A live stream of journal records.
    """

    @abstractmethod
    async def read_record(self) -> Optional[RawRecord]:
        """
        Wait for the next record.

        Returns:
            The next raw record, or None at end of stream

        Raises:
            StreamReadFailure: If the stream broke
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the stream. Safe to call more than once."""


class JournalSource(ABC):
    """
    Backend that can query recent records and follow new ones.
    """

    # True when query() returns the newest record first
    newest_first: bool = False

    @abstractmethod
    async def query(self, unit: str, max_records: int) -> List[RawRecord]:
        """
        Fetch up to ``max_records`` of the most recent records for a unit.

        Raises:
            QueryFailure: If the records could not be fetched
        """

    @abstractmethod
    async def follow(self, unit: str, after_cursor: Optional[str] = None) -> RecordStream:
        """
        Open a stream of records appended from now on.

        Args:
            unit: systemd unit to follow
            after_cursor: Resume right after this journal cursor when given

        Raises:
            StreamOpenFailure: If the stream could not be opened
        """


class JournalctlStream(RecordStream):
    """Reads ``journalctl -f -o json`` output line by line."""

    def __init__(self, process: asyncio.subprocess.Process):
        self.process = process
        self.logger = logging.getLogger(__name__)
        self._closed = False

    async def read_record(self) -> Optional[bytes]:
        if self._closed:
            return None
        try:
            line = await self.process.stdout.readline()
        except (ValueError, OSError, asyncio.IncompleteReadError) as e:
            raise StreamReadFailure(f"Error reading journalctl output: {e}") from e

        if not line:
            return None
        return line.rstrip(b'\n')

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self.process.returncode is None:
            try:
                self.process.terminate()
            except ProcessLookupError:
                return
            try:
                await asyncio.wait_for(self.process.wait(), timeout=2)
            except asyncio.TimeoutError:
                self.logger.warning(f"journalctl (pid {self.process.pid}) did not exit, killing it")
                self.process.kill()
                await self.process.wait()


class JournalctlSource(JournalSource):
    """
    Journal backend using the ``journalctl`` command.
    """

    newest_first = False

    def __init__(self, user_mode: bool = True, command: str = Settings.JOURNALCTL_COMMAND):
        """
        Initialize the journalctl backend.

        Args:
            user_mode: Read the user journal (``--user``)
            command: journalctl executable
        """
        self.user_mode = user_mode
        self.command = command
        self.logger = logging.getLogger(__name__)

    def _base_args(self, unit: str) -> List[str]:
        args = [self.command]
        if self.user_mode:
            args.append('--user')
        args.extend(['-u', unit, '-o', 'json', '--no-pager'])
        return args

    async def query(self, unit: str, max_records: int) -> List[bytes]:
        args = self._base_args(unit) + ['-n', str(max_records)]
        self.logger.debug(f"Querying journal: {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise QueryFailure(f"Could not run {self.command}: {e}") from e

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            message = stderr.decode('utf-8', errors='replace').strip()
            raise QueryFailure(f"{self.command} exited with status {process.returncode}: {message}")

        return [line for line in stdout.splitlines() if line.strip()]

    async def follow(self, unit: str, after_cursor: Optional[str] = None) -> JournalctlStream:
        args = self._base_args(unit) + ['-f']
        if after_cursor:
            args.append(f'--after-cursor={after_cursor}')
        else:
            # Only new entries; the backlog was read separately
            args.extend(['-n', '0'])
        self.logger.debug(f"Following journal: {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                limit=Settings.STREAM_LINE_LIMIT,
            )
        except OSError as e:
            raise StreamOpenFailure(f"Could not run {self.command}: {e}") from e

        return JournalctlStream(process)


class _FileChangeHandler(FileSystemEventHandler):
    """
    Forwards watchdog events for one file to an asyncio queue.
    """

    def __init__(self, path: Path, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        super().__init__()
        self.path = str(path)
        self.loop = loop
        self.queue = queue

    def _notify(self, change: str):
        self.loop.call_soon_threadsafe(self.queue.put_nowait, change)

    def on_modified(self, event):
        if not event.is_directory and str(event.src_path) == self.path:
            self._notify('modified')

    def on_created(self, event):
        if not event.is_directory and str(event.src_path) == self.path:
            self._notify('modified')

    def on_deleted(self, event):
        if not event.is_directory and str(event.src_path) == self.path:
            self._notify('gone')

    def on_moved(self, event):
        if not event.is_directory and str(event.src_path) == self.path:
            self._notify('gone')


class JsonLinesFileStream(RecordStream):
    """
    Tails a JSON-lines file, waking on watchdog notifications.

    Deleting, moving or truncating the file ends the stream.
    """

    def __init__(self, path: Path, handle, observer, queue: asyncio.Queue):
        self.path = path
        self.handle = handle
        self.observer = observer
        self.queue = queue
        self.logger = logging.getLogger(__name__)
        self._closed = False

    def _poll(self) -> Tuple[bool, Optional[bytes]]:
        """
        Try to read one complete line. Runs in a worker thread.

        Returns:
            (ended, line): ``ended`` is True at end of stream; ``line`` is
            None when nothing complete is available yet
        """
        try:
            position = self.handle.tell()
            line = self.handle.readline()
            if line.endswith(b'\n'):
                return False, line.rstrip(b'\n')
            # Incomplete line: rewind and wait for the writer to finish it
            self.handle.seek(position)

            if os.stat(self.path).st_size < position:
                self.logger.info(f"Journal file truncated: {self.path}")
                return True, None
        except FileNotFoundError:
            return True, None
        except ValueError:
            # Handle closed underneath us by close()
            if self._closed:
                return True, None
            raise
        except OSError as e:
            raise StreamReadFailure(f"Error reading {self.path}: {e}") from e
        return False, None

    async def read_record(self) -> Optional[bytes]:
        while not self._closed:
            ended, line = await asyncio.to_thread(self._poll)
            if ended:
                return None
            if line is not None:
                return line

            change = await self.queue.get()
            if change == 'gone':
                return None
        return None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.handle.close()
        self.observer.stop()
        await asyncio.to_thread(self.observer.join, 5)


class JsonLinesFileSource(JournalSource):
    """
    Journal backend reading a JSON-lines export (``journalctl -o json`` output).

    Useful on hosts without systemd or for replaying captured logs. The file
    is expected to hold the records of a single unit, so ``unit`` is ignored.
    Following resumes after ``after_cursor`` when the file still holds it.
    """

    newest_first = False

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self.logger = logging.getLogger(__name__)

    async def query(self, unit: str, max_records: int) -> List[str]:
        try:
            return await asyncio.to_thread(self._read_tail, max_records)
        except OSError as e:
            raise QueryFailure(f"Could not read {self.path}: {e}") from e

    def _read_tail(self, max_records: int) -> List[str]:
        lines = deque(maxlen=max_records)
        with open(self.path, 'r', encoding='utf-8', errors='replace') as f:
            for line in f:
                line = line.strip()
                if line:
                    lines.append(line)
        return list(lines)

    def _open_at(self, after_cursor: Optional[str]):
        """
        Open the file positioned for following.

        Without a cursor reading starts at the end. With one, it starts right
        after the last line carrying that cursor, or at the beginning when the
        cursor is not in the file (new or rotated file).
        """
        handle = open(self.path, 'rb')
        try:
            if after_cursor is None:
                handle.seek(0, os.SEEK_END)
                return handle

            resume_at = 0
            for line in iter(handle.readline, b''):
                if not line.endswith(b'\n'):
                    break
                if after_cursor.encode('utf-8') in line and self._cursor_of(line) == after_cursor:
                    resume_at = handle.tell()
            handle.seek(resume_at)
            if resume_at == 0:
                self.logger.info(f"Cursor {after_cursor} not found in {self.path}, reading from the start")
            return handle
        except BaseException:
            handle.close()
            raise

    @staticmethod
    def _cursor_of(line: bytes) -> Optional[str]:
        try:
            record = json.loads(line)
        except ValueError:
            return None
        return record.get('__CURSOR') if isinstance(record, dict) else None

    async def follow(self, unit: str, after_cursor: Optional[str] = None) -> JsonLinesFileStream:
        if not self.path.exists():
            raise StreamOpenFailure(f"Journal file does not exist: {self.path}")

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        observer = Observer()

        try:
            handle = await asyncio.to_thread(self._open_at, after_cursor)
        except OSError as e:
            raise StreamOpenFailure(f"Could not open {self.path}: {e}") from e

        try:
            observer.schedule(_FileChangeHandler(self.path.resolve(), loop, queue),
                              str(self.path.resolve().parent), recursive=False)
            observer.start()
        except Exception as e:
            handle.close()
            raise StreamOpenFailure(f"Could not watch {self.path}: {e}") from e

        self.logger.debug(f"Following journal file: {self.path}")
        return JsonLinesFileStream(self.path, handle, observer, queue)


def create_source(config) -> JournalSource:
    """
    Create the journal backend selected in the configuration.

    Args:
        config: Application configuration

    Returns:
        JournalSource instance
    """
    if config.journal.backend == 'file':
        if not config.journal.file:
            raise ValueError("journal.file must be set for the 'file' backend")
        return JsonLinesFileSource(config.journal.file)
    return JournalctlSource(user_mode=config.journal.user_mode)
