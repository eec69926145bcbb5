"""Secondary display connectivity watcher.

Polls a display probe and reports when a secondary output (projector,
TV) is attached or detached. Any failure to enumerate outputs counts as
"no secondary display": the watcher never assumes presence.
"""

import asyncio
import re
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from church_hymn.presenter.logging_config import get_logger

logger = get_logger(__name__)

DisplayListener = Callable[[bool, Optional["DisplayInfo"]], None]


@dataclass(frozen=True)
class DisplayInfo:
    """Descriptor of a secondary display.

    Attributes:
        name: Output name (e.g. "HDMI-1")
        width: Width in pixels (0 when the output has no active mode)
        height: Height in pixels
        scale: Scale factor
        refresh_rate: Refresh rate in Hz
    """

    name: str
    width: int = 1920
    height: int = 1080
    scale: float = 1.0
    refresh_rate: int = 60

    @property
    def description(self) -> str:
        """Human-readable summary."""
        return f"External Display {self.name}: {self.width}x{self.height} @{self.scale:g}x, {self.refresh_rate}fps"


class DisplayProbe(ABC):
    """Enumerates the secondary outputs currently attached."""

    @abstractmethod
    async def detect(self) -> list[DisplayInfo]:
        """Return attached secondary displays (primary excluded)."""


class StaticProbe(DisplayProbe):
    """Probe whose outputs are attached and detached by hand.

    Used by tests and by the console's simulated display toggle.
    """

    def __init__(self, displays: Optional[list[DisplayInfo]] = None):
        self.displays: list[DisplayInfo] = list(displays or [])
        self.fail_with: Optional[Exception] = None

    def attach(self, display: Optional[DisplayInfo] = None) -> DisplayInfo:
        display = display or DisplayInfo(name="SIMULATED-1")
        self.displays = [display]
        return display

    def detach(self) -> None:
        self.displays = []

    async def detect(self) -> list[DisplayInfo]:
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.displays)


_OUTPUT_RE = re.compile(r"^(?P<name>\S+) connected(?P<primary> primary)?(?: (?P<w>\d+)x(?P<h>\d+)\+\d+\+\d+)?")
_MODE_RE = re.compile(r"^\s+\d+x\d+\s+(?P<rates>.*)$")
_RATE_RE = re.compile(r"(?P<rate>[\d.]+)\*")


def parse_xrandr(output: str) -> list[DisplayInfo]:
    """Parse `xrandr --query` output into secondary displays.

    Args:
        output: Text printed by xrandr

    Returns:
        Connected, non-primary outputs in listed order
    """
    displays: list[DisplayInfo] = []
    current: Optional[dict] = None

    def flush() -> None:
        if current is not None and not current["primary"]:
            displays.append(
                DisplayInfo(
                    name=current["name"],
                    width=current["width"],
                    height=current["height"],
                    refresh_rate=current["rate"],
                )
            )

    for line in output.splitlines():
        match = _OUTPUT_RE.match(line)
        if match:
            flush()
            current = {
                "name": match.group("name"),
                "primary": bool(match.group("primary")),
                "width": int(match.group("w") or 0),
                "height": int(match.group("h") or 0),
                "rate": 60,
            }
            continue

        if not line.startswith((" ", "\t")):
            # Header or disconnected output ends the current block
            flush()
            current = None
            continue

        if current is not None:
            mode = _MODE_RE.match(line)
            rate = _RATE_RE.search(mode.group("rates")) if mode else None
            if rate:
                current["rate"] = round(float(rate.group("rate")))

    flush()
    return displays


class XrandrProbe(DisplayProbe):
    """Probe that asks X11 for connected outputs via `xrandr --query`.

    Attributes:
        timeout: Seconds to wait for xrandr
    """

    def __init__(self, timeout: float = 3.0, executable: str = "xrandr"):
        self.timeout = timeout
        self.executable = executable

    async def detect(self) -> list[DisplayInfo]:
        if shutil.which(self.executable) is None:
            raise FileNotFoundError(f"{self.executable} not found on PATH")

        process = await asyncio.create_subprocess_exec(
            self.executable,
            "--query",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            raise RuntimeError(f"xrandr exited with {process.returncode}: {stderr.decode(errors='ignore').strip()}")

        return parse_xrandr(stdout.decode("utf-8", errors="ignore"))


class DisplayWatcher:
    """Tracks whether a secondary display is present.

    Listeners are called with (connected, display_info) only when
    presence changes.

    Attributes:
        probe: Source of attached displays
        poll_interval: Seconds between polls while started
    """

    def __init__(self, probe: DisplayProbe, poll_interval: float = 2.0):
        """Initialize the watcher.

        Args:
            probe: Display probe to poll
            poll_interval: Seconds between polls
        """
        self.probe = probe
        self.poll_interval = poll_interval
        self._display_info: Optional[DisplayInfo] = None
        self._listeners: list[DisplayListener] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def display_info(self) -> Optional[DisplayInfo]:
        """Descriptor of the attached display, None when absent."""
        return self._display_info

    def is_connected(self) -> bool:
        return self._display_info is not None

    def add_listener(self, callback: DisplayListener) -> None:
        """Register a connectivity change callback."""
        self._listeners.append(callback)

    def remove_listener(self, callback: DisplayListener) -> None:
        """Remove a connectivity change callback."""
        self._listeners = [cb for cb in self._listeners if cb != callback]

    async def refresh(self) -> bool:
        """Query the probe now and emit a change event if needed.

        Returns:
            True if a secondary display is present
        """
        try:
            displays = await self.probe.detect()
        except Exception as e:
            logger.warning(f"Display probe failed, treating as disconnected: {e}")
            displays = []

        info = displays[0] if displays else None
        previous = self._display_info
        changed = (previous is None) != (info is None)
        if info is not None and previous is not None and info.name != previous.name:
            changed = True
        self._display_info = info

        if changed:
            logger.info(f"Secondary display {'attached: ' + info.description if info else 'detached'}")
            self._emit(info is not None, info)

        return info is not None

    def _emit(self, connected: bool, info: Optional[DisplayInfo]) -> None:
        for callback in list(self._listeners):
            try:
                callback(connected, info)
            except Exception:
                logger.exception("Display listener failed")

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._poll_loop())
        logger.info(f"Display watcher started (interval: {self.poll_interval}s)")

    async def stop(self) -> None:
        """Stop polling."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Display watcher stopped")

    async def _poll_loop(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.poll_interval)
