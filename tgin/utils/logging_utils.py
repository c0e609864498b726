# tgin/utils/logging_utils.py
from __future__ import annotations

import logging
import math
import os
import time
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler
from tqdm import tqdm


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the package logger with a rich console handler and optional file output."""
    logger = logging.getLogger("tgin")
    logger.setLevel(level)
    logger.propagate = False  # Avoid duplicate handlers

    for h in list(logger.handlers):
        logger.removeHandler(h)

    rh = RichHandler(console=Console(stderr=True), show_time=True, show_path=False, markup=False)
    rh.setLevel(level)
    logger.addHandler(rh)

    if log_file:
        parent = os.path.dirname(log_file)
        if parent:
            os.makedirs(parent, exist_ok=True)
        fh = logging.FileHandler(log_file)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(fh)

    logger.debug("tgin logging at %s.", logging.getLevelName(level))
    return logger


def verbosity_to_level(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


@dataclass
class Timer:
    """Times a batch of draws and reports its throughput."""
    name: str = "rtgin"
    logger: Optional[logging.Logger] = None
    draws: int = 0
    start: float = 0.0
    elapsed: float = 0.0

    @property
    def draws_per_second(self) -> float:
        if self.elapsed <= 0.0:
            return math.inf if self.draws else 0.0
        return self.draws / self.elapsed

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        if self.logger:
            self.logger.debug("[%s] drawing %d values.", self.name, self.draws)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.elapsed = time.perf_counter() - self.start
        if not self.logger:
            return
        if exc_type is None:
            self.logger.info(
                "[%s] %d draws in %.3fs (%.0f draws/s).",
                self.name, self.draws, self.elapsed, self.draws_per_second,
            )
        else:
            self.logger.warning(
                "[%s] failed after %.3fs: %s", self.name, self.elapsed, exc_type.__name__
            )


def progress(iterable: Iterable, total: Optional[int] = None, desc: Optional[str] = None):
    """Wrap an iterable with a tqdm progress bar."""
    kwargs = {}
    if total is not None:
        kwargs["total"] = total
    if desc:
        kwargs["desc"] = desc
    return tqdm(iterable, **kwargs)


def format_config(cfg: Mapping[str, Any]) -> List[str]:
    """One ``section: key=value ...`` line per top-level entry; the draw request first."""
    def _flatten(d: Mapping[str, Any], prefix: str = "") -> List[str]:
        items = []
        for k, v in d.items():
            key = f"{prefix}.{k}" if prefix else str(k)
            if isinstance(v, Mapping):
                items.extend(_flatten(v, key))
            else:
                items.append(f"{key}={v}")
        return items

    order = sorted(cfg, key=lambda k: (k != "draw", str(k)))
    lines = []
    for k in order:
        v = cfg[k]
        if isinstance(v, Mapping):
            lines.append(f"{k}: " + " ".join(_flatten(v)))
        else:
            lines.append(f"{k}: {v}")
    return lines


def log_config(logger: logging.Logger, cfg: Mapping[str, Any]) -> None:
    """Log the effective run config, one line per section."""
    for line in format_config(cfg):
        logger.info(line)
