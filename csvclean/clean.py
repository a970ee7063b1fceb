"""
Core cleaning logic.

Responsibilities:
- read delimited records one at a time (comment records and blank lines skipped)
- copy an optional header record through unchanged
- encapsulate every other value and rejoin with the delimiter
- stop between records once cancellation is requested
- copy the temporary output back over the input in in-place mode
"""

from __future__ import annotations

import csv
import logging
import os
import shutil
import sys
import threading
from typing import IO, Iterator, List, Optional

from .errors import FinalizeError, ParseError, WriteError
from .files import open_files
from .models import Configuration
from .rules import READ_QUOTECHAR

logger = logging.getLogger(__name__)


class LineCounter:
    """Records processed so far; safe to read from another thread."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


def _raise_field_size_limit() -> None:
    """Lift the csv module's per-field cap; only memory bounds a field."""
    limit = sys.maxsize
    while True:
        try:
            csv.field_size_limit(limit)
            return
        except OverflowError:
            limit //= 10


_raise_field_size_limit()

_FIELD_START, _UNQUOTED, _QUOTED, _QUOTE_SEEN = range(4)


class _SourceLines:
    """
    Iterate physical lines for the csv reader.

    Tracks quoting across lines so that a comment marker is honoured only at
    the start of a record, never inside a multi-line quoted field, and so
    that a quote inside an unquoted field is rejected. Skipped comment lines
    still count towards ``line_num``.
    """

    def __init__(self, stream: IO[str], comment: Optional[str], delimiter: str, quote: str = READ_QUOTECHAR):
        self._stream = stream
        self._comment = comment
        self._delimiter = delimiter
        self._quote = quote
        self._state = _FIELD_START
        self.line_num = 0

    def _scan(self, line: str) -> None:
        if self._quote not in line:
            return
        state = self._state
        for ch in line:
            if state == _QUOTED:
                if ch == self._quote:
                    state = _QUOTE_SEEN
            elif state == _QUOTE_SEEN:
                # anything but a doubled quote closes the field; strict
                # parsing reports junk after the closing quote
                state = _QUOTED if ch == self._quote else _FIELD_START
            elif ch == self._delimiter or ch in "\r\n":
                state = _FIELD_START
            elif state == _FIELD_START:
                state = _QUOTED if ch == self._quote else _UNQUOTED
            elif ch == self._quote:
                raise csv.Error(f"bare {self._quote} in non-quoted field")
        self._state = _QUOTED if state == _QUOTED else _FIELD_START

    def __iter__(self) -> Iterator[str]:
        for line in self._stream:
            self.line_num += 1
            at_record_start = self._state != _QUOTED
            if at_record_start and self._comment is not None and line.startswith(self._comment):
                continue
            self._scan(line)
            yield line


def _stream_name(stream: IO[str], default: str) -> str:
    name = getattr(stream, "name", None)
    return name if isinstance(name, str) else default


def encapsulate(record: List[str], quote: str) -> List[str]:
    return [f"{quote}{value}{quote}" for value in record]


def clean_records(
    infile: IO[str],
    outfile: IO[str],
    config: Configuration,
    cancel: threading.Event,
    counter: LineCounter,
) -> None:
    """
    Rewrite every record of ``infile`` into ``outfile``.

    Every record must carry as many fields as the first one. Cancellation is
    checked after a record is read and before it is written, so a cancelled
    run leaves only whole records behind.
    """
    in_name = _stream_name(infile, config.input_path)
    out_name = _stream_name(outfile, config.output_path or "<output>")

    source = _SourceLines(infile, config.comment, config.delimiter)
    reader = csv.reader(source, delimiter=config.delimiter, quotechar=READ_QUOTECHAR, strict=True)
    expected_fields = None
    header_pending = config.header

    while True:
        try:
            record = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            raise ParseError(in_name, source.line_num, e) from e
        except UnicodeDecodeError as e:
            # the failing line was never handed out, so it is the next one
            raise ParseError(in_name, source.line_num + 1, e) from e

        if not record:
            continue

        if expected_fields is None:
            expected_fields = len(record)
        elif len(record) != expected_fields:
            raise ParseError(
                in_name,
                source.line_num,
                f"wrong number of fields (expected {expected_fields}, saw {len(record)})",
            )

        if cancel.is_set():
            logger.debug("Stop requested, abandoning record at line %d", source.line_num)
            return

        number = counter.increment()
        logger.debug("Processing input: %s", record)

        if header_pending:
            updated = record
            header_pending = False
        else:
            updated = encapsulate(record, config.encapsulation)

        logger.debug("Updated line: %s", updated)

        try:
            outfile.write(config.delimiter.join(updated) + "\n")
        except (OSError, UnicodeEncodeError) as e:
            raise WriteError(out_name, number, e) from e


def finalize_in_place(infile: IO[str], tmpfile: IO[str], input_path: str) -> None:
    """
    Overwrite ``infile`` with the bytes of ``tmpfile``.

    The input is truncated before the copy; ``FinalizeError.truncated`` tells
    whether the original contents were already gone when the failure hit.
    """
    temp_path = _stream_name(tmpfile, "<temp>")
    truncated = False
    try:
        tmpfile.flush()
        tmpfile.buffer.seek(0)
        infile.flush()
        infile.buffer.seek(0)
        infile.buffer.truncate(0)
        truncated = True
        shutil.copyfileobj(tmpfile.buffer, infile.buffer)
        infile.buffer.flush()
    except OSError as e:
        raise FinalizeError(input_path, temp_path, e, truncated=truncated) from e
    logger.debug("Copied %r back over %r", temp_path, input_path)


def _remove_temp(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temp file %r: %s", path, e)
    else:
        logger.debug("Removed temp file %r", path)


def run(config: Configuration, cancel: threading.Event, counter: LineCounter) -> None:
    """Open both files, rewrite the records and, in place mode, swap the result back."""
    infile, outfile = open_files(config)
    temp_path = _stream_name(outfile, "") if config.in_place else None
    keep_temp = False

    try:
        with infile, outfile:
            clean_records(infile, outfile, config, cancel, counter)
            if config.in_place:
                try:
                    finalize_in_place(infile, outfile, config.input_path)
                except FinalizeError as e:
                    keep_temp = e.truncated
                    if keep_temp:
                        logger.error("Input %r was truncated; cleaned data remains in %r", config.input_path, temp_path)
                    raise
            else:
                try:
                    outfile.flush()
                except OSError as e:
                    raise WriteError(config.output_path, counter.value, e) from e
    finally:
        if temp_path and not keep_temp:
            _remove_temp(temp_path)
