"""
rdf2html - Site builder.

The filesystem side of the converter: collects Turtle files under the
input directory, feeds their text to the conversion pipeline and writes
the resulting pages. Can keep watching the input directory and rebuild
whenever a source file changes.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
import time
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .config import Config
from .converter import ConversionResult, convert, parse_all
from .errors import ParseError
from .renderer import HtmlRenderer

logger = logging.getLogger("rdf2html.builder")

__all__ = ["BuildReport", "SiteBuilder", "SourceEventHandler", "configure_logging"]


def configure_logging(level: str = "INFO") -> None:
    """Configure the package logger, not the root logger."""
    pkg_logger = logging.getLogger("rdf2html")
    pkg_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not pkg_logger.handlers or all(
        isinstance(h, logging.NullHandler) for h in pkg_logger.handlers
    ):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        ))
        pkg_logger.addHandler(handler)


@dataclass(frozen=True)
class BuildReport:
    """Pages written to disk and the sources that failed to parse."""

    written: tuple[Path, ...]
    failures: dict[str, ParseError]

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        lines = [f"{len(self.written)} page(s) written, {len(self.failures)} file(s) failed"]
        for source, err in sorted(self.failures.items()):
            lines.append(f"  {source}:{err.line}:{err.column}: {err.message}")
        return "\n".join(lines)


class SourceEventHandler(FileSystemEventHandler):
    """Watchdog handler: any change to a matching source triggers a rebuild."""

    def __init__(self, builder: SiteBuilder):
        super().__init__()
        self._builder = builder

    def on_created(self, event):
        if not event.is_directory:
            self._builder.notify_change(event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._builder.notify_change(event.src_path)

    def on_deleted(self, event):
        if not event.is_directory:
            self._builder.notify_change(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._builder.notify_change(event.src_path)
            self._builder.notify_change(event.dest_path)


class SiteBuilder:
    """
    Builds the HTML site described by a Config.

    Reading sources and writing pages happen here; everything in between
    is delegated to ``converter.convert``.
    """

    def __init__(self, config: Config, renderer: HtmlRenderer | None = None):
        self._config = config
        self._renderer = renderer or HtmlRenderer(
            title=config.title, index_title=config.index_title,
        )
        self._observer: Observer | None = None
        self._shutdown = threading.Event()
        self._pending = threading.Event()
        self._build_lock = threading.Lock()
        self._last_change = 0.0
        # Pages written by the previous build of this builder
        self._written: set[Path] = set()

    @property
    def config(self) -> Config:
        return self._config

    # =========================================================================
    # Source discovery
    # =========================================================================

    def _relative(self, path: Path) -> str:
        return path.relative_to(self._config.input_dir).as_posix()

    def _is_excluded(self, rel: str) -> bool:
        for pattern in self._config.exclude_patterns:
            if fnmatch(rel, pattern) or fnmatch(f"./{rel}", pattern):
                return True
        return False

    def _is_source(self, path: Path) -> bool:
        try:
            rel = self._relative(path)
        except ValueError:
            return False
        if self._is_excluded(rel):
            return False
        return any(fnmatch(path.name, p) for p in self._config.include_patterns)

    def collect_sources(self) -> list[Path]:
        """Matching source files under the input directory, sorted by relative path."""
        input_dir = self._config.input_dir
        if not input_dir.is_dir():
            logger.warning("Input directory does not exist: %s", input_dir)
            return []
        output_dir = self._config.output_dir
        found = []
        for fp in input_dir.rglob("*"):
            if not fp.is_file() or fp.is_relative_to(output_dir):
                continue
            if self._is_source(fp):
                found.append(fp)
        return sorted(found, key=self._relative)

    def read_sources(self) -> tuple[dict[str, str], dict[str, ParseError]]:
        """Read every source as UTF-8, dropping a leading BOM. Unreadable files are reported as failures."""
        sources: dict[str, str] = {}
        failures: dict[str, ParseError] = {}
        for fp in self.collect_sources():
            rel = self._relative(fp)
            try:
                sources[rel] = fp.read_text(encoding="utf-8-sig")
            except (OSError, UnicodeDecodeError) as e:
                logger.error("Cannot read %s: %s", fp, e)
                failures[rel] = ParseError(1, 1, f"cannot read file: {e}", source=rel)
        return sources, failures

    # =========================================================================
    # Build
    # =========================================================================

    def _write(self, result: ConversionResult) -> list[Path]:
        output_dir = self._config.output_dir
        written = []
        for name, html in result.pages.items():
            target = output_dir / name
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_suffix(".tmp")
            tmp.write_text(html, encoding="utf-8")
            tmp.replace(target)
            written.append(target)
        return written

    def _prune(self, written: list[Path]) -> None:
        """Delete pages from the previous build that this build did not produce."""
        current = set(written)
        for stale in sorted(self._written - current):
            stale.unlink(missing_ok=True)
            logger.info("Removed stale page %s", stale)
        self._written = current

    def build(self) -> BuildReport:
        """One full build: read, convert, write."""
        with self._build_lock:
            logger.info("=== Build started: %s ===", self._config.input_dir)
            sources, read_failures = self.read_sources()
            result = convert(sources, workers=self._config.workers, renderer=self._renderer)
            written = self._write(result)
            self._prune(written)
            failures = {**read_failures, **result.failures}
            for source, err in sorted(failures.items()):
                logger.warning("Skipped %s: line %d, column %d: %s", source, err.line, err.column, err.message)
            logger.info(
                "=== Build complete: %d pages | %d failed -> %s ===",
                len(written), len(failures), self._config.output_dir,
            )
            return BuildReport(written=tuple(written), failures=failures)

    def check(self) -> dict[str, ParseError]:
        """Parse every source without writing anything. Returns the failures."""
        sources, failures = self.read_sources()
        _, parse_failures = parse_all(sources, workers=self._config.workers)
        return {**failures, **parse_failures}

    # =========================================================================
    # Watch mode
    # =========================================================================

    def notify_change(self, path: str) -> None:
        """Record a filesystem change; matching sources schedule a rebuild."""
        if not self._is_source(Path(path).resolve()):
            return
        logger.debug("Change: %s", path)
        self._last_change = time.monotonic()
        self._pending.set()

    def watch(self) -> None:
        """Build once, then rebuild on every (debounced) source change until stopped."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.build()

        self._observer = Observer()
        self._observer.schedule(SourceEventHandler(self), str(self._config.input_dir), recursive=True)
        self._observer.start()
        logger.info("Watching %s for changes", self._config.input_dir)

        debounce = self._config.watch_debounce_seconds
        while not self._shutdown.is_set():
            if not self._pending.wait(timeout=0.5):
                continue
            if time.monotonic() - self._last_change < debounce:
                self._shutdown.wait(timeout=debounce)
                continue
            self._pending.clear()
            if not self._shutdown.is_set():
                self.build()

    def stop(self) -> None:
        """Graceful shutdown."""
        logger.info("Shutting down...")
        self._shutdown.set()
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)

    def _signal_handler(self, signum, frame):
        self.stop()
        sys.exit(0)
