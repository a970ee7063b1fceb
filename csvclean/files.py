"""
Resolve the input and output streams for a run.

Normal mode writes to the configured output path; in-place mode writes to a
temporary file that is later copied back over the input.
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import IO, Tuple

from charset_normalizer import from_bytes

from .errors import FileOpenError
from .models import Configuration
from .rules import AUTO_ENCODING, DEFAULT_ENCODING, DETECTION_SAMPLE_BYTES, TEMP_PREFIX, TEXT_ERRORS

logger = logging.getLogger(__name__)


def detect_encoding(path: str) -> str:
    """
    Best-effort encoding detection via charset-normalizer.

    - ASCII is widened to UTF-8 so non-ASCII quote characters can be written.
    - A UTF-8 BOM selects utf-8-sig so it is neither doubled nor lost.
    - Falls back to UTF-8 when nothing is detected (e.g. an empty file).
    """
    with open(path, "rb") as fh:
        raw = fh.read(DETECTION_SAMPLE_BYTES)

    match = from_bytes(raw).best()
    detected = match.encoding if match is not None else DEFAULT_ENCODING
    normalized = detected.lower().replace("-", "_")

    if normalized in ("ascii", "us_ascii"):
        detected = DEFAULT_ENCODING
        normalized = "utf_8"
    if raw.startswith(b"\xef\xbb\xbf") and normalized in ("utf_8", "utf8"):
        detected = "utf-8-sig"

    logger.debug("Detected encoding %s for %r", detected, path)
    return detected


def resolve_encoding(config: Configuration) -> str:
    if config.encoding != AUTO_ENCODING:
        return config.encoding
    try:
        return detect_encoding(config.input_path)
    except OSError as e:
        raise FileOpenError("input", config.input_path, e) from e


def _open_output(config: Configuration, encoding: str) -> IO[str]:
    flags = os.O_WRONLY | os.O_CREAT
    if config.truncate:
        flags |= os.O_TRUNC
    logger.debug("Opening output file %r (flags=%#o, mode=%#o)...", config.output_path, flags, config.permissions)
    fd = os.open(config.output_path, flags, config.permissions)
    try:
        return os.fdopen(fd, "w", encoding=encoding, errors=TEXT_ERRORS, newline="")
    except BaseException:
        os.close(fd)
        raise


def _open_temp(config: Configuration, encoding: str) -> IO[str]:
    basename = os.path.basename(config.input_path)
    logger.debug("In-place overwrite specified, opening temp file...")
    return tempfile.NamedTemporaryFile(
        mode="w+",
        prefix=TEMP_PREFIX,
        suffix=f".{basename}",
        dir=tempfile.gettempdir(),
        delete=False,
        encoding=encoding,
        errors=TEXT_ERRORS,
        newline="",
    )


def open_files(config: Configuration) -> Tuple[IO[str], IO[str]]:
    """
    Open (input, output) text streams for the configured mode.

    Both streams use ``newline=""`` so record terminators are left to the
    csv reader and to the writer, and ``surrogateescape`` so bytes that do
    not decode in the chosen encoding reach the output as they were. On
    failure nothing is left open.
    """
    encoding = resolve_encoding(config)
    in_mode = "r+" if config.in_place else "r"

    logger.debug("Opening input file %r (mode=%s, encoding=%s)...", config.input_path, in_mode, encoding)
    try:
        infile = open(config.input_path, in_mode, encoding=encoding, errors=TEXT_ERRORS, newline="")
    except OSError as e:
        raise FileOpenError("input", config.input_path, e) from e

    try:
        if config.in_place:
            try:
                outfile = _open_temp(config, encoding)
            except OSError as e:
                raise FileOpenError("temporary", tempfile.gettempdir(), e) from e
        else:
            try:
                outfile = _open_output(config, encoding)
            except OSError as e:
                raise FileOpenError("output", config.output_path, e) from e
    except BaseException:
        infile.close()
        raise

    return infile, outfile
