"""
Logging for the Lumina study pipeline
=====================================

Colored, phase-tracked logging for a single model invocation.
IMPORTANT: No emojis in console output (Windows encoding issues).
"""

import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterable, Optional

from colorama import Fore, Style, init

# Initialize colorama for Windows
init(autoreset=True)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Low-level HTTP connection logs clutter the per-phase output
NOISY_LOGGERS = (
    'httpcore',
    'httpcore.connection',
    'httpcore.http11',
    'httpx',
    'urllib3',
    'urllib3.connectionpool',
    'aiohttp.access',
    'asyncio',
)


class Phase:
    """Phase constants for one invocation"""
    BUILD = "REQUEST_BUILD"
    INVOKE = "MODEL_INVOCATION"
    EXTRACT = "PAYLOAD_EXTRACTION"
    VALIDATE = "DOMAIN_VALIDATION"


PHASE_COLORS = {
    Phase.BUILD: Fore.CYAN,
    Phase.INVOKE: Fore.GREEN,
    Phase.EXTRACT: Fore.YELLOW,
    Phase.VALIDATE: Fore.MAGENTA,
}

# Text-based icons, no emojis
PHASE_ICONS = {
    Phase.BUILD: "[BLD]",
    Phase.INVOKE: "[INV]",
    Phase.EXTRACT: "[EXT]",
    Phase.VALIDATE: "[VAL]",
}


def configure_logging(level: str = "INFO", noisy_loggers: Iterable[str] = NOISY_LOGGERS) -> None:
    """Root logging setup shared by the proxy server and the CLI."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


class PhaseLogger:
    """
    Logger bound to one invocation id, with per-phase timing.

    Usage:
        phase_logger = PhaseLogger(invocation_id="a1b2c3d4")

        with phase_logger.phase(Phase.INVOKE, sub_label=request.target_model):
            phase_logger.log_attempt(1, 503, retry_delay=1.0)
    """

    def __init__(
        self,
        invocation_id: str,
        verbose: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        self.invocation_id = invocation_id
        self.verbose = verbose
        self.logger = logger or logging.getLogger(__name__)
        self._timings: Dict[str, float] = {}
        self._current_phase: Optional[str] = None

    @property
    def timings(self) -> Dict[str, float]:
        return dict(self._timings)

    @contextmanager
    def phase(self, phase_name: str, sub_label: Optional[str] = None):
        """Time a phase; failures are logged with the phase they happened in and re-raised."""
        previous = self._current_phase
        self._current_phase = phase_name
        started = time.perf_counter()
        self.debug(f"{phase_name} started" + (f" - {sub_label}" if sub_label else ""))
        try:
            yield self
        except Exception as exc:
            self.error(f"{phase_name} failed: {type(exc).__name__}: {exc}")
            raise
        finally:
            elapsed = time.perf_counter() - started
            self._timings[phase_name] = self._timings.get(phase_name, 0.0) + elapsed
            self.debug(f"{phase_name} finished in {elapsed:.2f}s")
            self._current_phase = previous

    def _prefix(self) -> str:
        if self._current_phase:
            color = PHASE_COLORS.get(self._current_phase, Fore.WHITE)
            icon = PHASE_ICONS.get(self._current_phase, "[???]")
            return f"{color}{icon}{Style.RESET_ALL} [{self.invocation_id}]"
        return f"[{self.invocation_id}]"

    def info(self, message: str):
        self.logger.info(f"{self._prefix()} {message}")

    def debug(self, message: str):
        """Only emitted when verbose"""
        if self.verbose:
            self.logger.debug(f"{self._prefix()} {Style.DIM}{message}{Style.RESET_ALL}")

    def warning(self, message: str):
        self.logger.warning(f"{self._prefix()} {Fore.YELLOW}[WARN] {message}{Style.RESET_ALL}")

    def error(self, message: str):
        self.logger.error(f"{self._prefix()} {Fore.RED}{Style.BRIGHT}[ERROR] {message}{Style.RESET_ALL}")

    def log_attempt(self, attempt: int, status: int, retry_delay: Optional[float] = None):
        """Log one proxy round trip; a retry delay means the attempt will be repeated."""
        if retry_delay is None:
            self.info(f"Attempt {attempt}: HTTP {status}")
        else:
            self.warning(f"Attempt {attempt}: HTTP {status}, retrying in {retry_delay:.1f}s")

    def log_timing_summary(self):
        if not self._timings:
            return
        total = sum(self._timings.values())
        parts = ", ".join(f"{name}={elapsed:.2f}s" for name, elapsed in self._timings.items())
        self.logger.info(f"[{self.invocation_id}] {Style.BRIGHT}Timing: {parts} (total {total:.2f}s){Style.RESET_ALL}")
