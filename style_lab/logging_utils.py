from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence, TextIO, Union

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from .config import LoggingConfig
from .evolution.records import Candidate, GenerationRecord

_LOG_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}
_STYLES = {"DEBUG": "dim", "INFO": "white", "WARN": "yellow", "ERROR": "red"}


def _normalize_level(level: str) -> str:
    level = level.upper().strip()
    return "WARN" if level == "WARNING" else level


def _should_emit(configured: str, requested: str) -> bool:
    return _LOG_LEVELS.get(requested, 100) >= _LOG_LEVELS.get(configured, 20)


@dataclass(slots=True)
class RunLogger:
    """Step-tagged console log for render/feedback/evolve cycles."""

    console: Console
    level: str = "INFO"
    logfile: Optional[Path] = None
    _plain_file: Optional[TextIO] = field(init=False, repr=False, default=None)

    def __post_init__(self) -> None:
        self.level = _normalize_level(self.level)
        if self.logfile:
            self.logfile.parent.mkdir(parents=True, exist_ok=True)
            self._plain_file = self.logfile.open("a", encoding="utf-8")

    def close(self) -> None:
        if self._plain_file:
            self._plain_file.close()
            self._plain_file = None

    def log(
        self,
        step: str,
        message: str,
        level: str = "INFO",
        elapsed_ms: Optional[float] = None,
    ) -> None:
        level = _normalize_level(level)
        if not _should_emit(self.level, level):
            return
        now = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        suffix = f" (ms={elapsed_ms:.0f})" if elapsed_ms is not None else ""
        line = f"[{now}] [{level.ljust(5)}] [{step.upper().ljust(8)}] {message}{suffix}"
        self.console.print(line, style=_STYLES.get(level, "white"), highlight=False, soft_wrap=True)
        if self._plain_file:
            self._plain_file.write(line + "\n")
            self._plain_file.flush()

    def timed(
        self,
        step: str,
        message: Union[str, Callable[[object], str]],
        func: Callable[..., object],
        *args,
        level: str = "INFO",
        **kwargs,
    ) -> object:
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            elapsed = (time.perf_counter() - start) * 1000.0
            self.log(step, f"error: {exc}", level="ERROR", elapsed_ms=elapsed)
            raise
        elapsed = (time.perf_counter() - start) * 1000.0
        msg = message(result) if callable(message) else message
        self.log(step, msg, level=level, elapsed_ms=elapsed)
        return result

    def generation(self, record: GenerationRecord) -> None:
        fitness = f"{record.fitness:.3f}" if record.has_fitness else "n/a"
        self.log(
            "evolve",
            f"generation={record.generation} style='{record.style.name}' v{record.style.version} fitness={fitness}",
        )

    def candidates(self, candidates: Sequence[Candidate]) -> None:
        if not candidates or not _should_emit(self.level, "DEBUG"):
            return
        table = Table(title="candidates", show_lines=False)
        table.add_column("#", justify="right")
        table.add_column("kind")
        table.add_column("score", justify="right")
        table.add_column("distance", justify="right")
        for cand in candidates:
            table.add_row(str(cand.order), cand.label, f"{cand.score:.4f}", f"{cand.distance:.4f}")
        self.console.print(table)


def create_logger(config: LoggingConfig | None = None) -> RunLogger:
    cfg = config or LoggingConfig()
    console = Console(theme=Theme({"repr.number": "cyan"}))
    return RunLogger(console=console, level=cfg.level, logfile=cfg.logfile)


def configure_stdlib_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


__all__ = ["RunLogger", "configure_stdlib_logging", "create_logger"]
