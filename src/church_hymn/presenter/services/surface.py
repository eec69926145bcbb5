"""Output surface abstraction for the audience-facing display.

The state machine owns exactly one surface. It only ever drives the
surface lifecycle (create/destroy) and swaps its content; it never
looks inside. The console app supplies a Textual-backed surface and
tests use MemorySurface.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from church_hymn.presenter.logging_config import get_logger
from church_hymn.presenter.services.verses import Slide

if TYPE_CHECKING:
    from church_hymn.presenter.services.display_watcher import DisplayInfo

logger = get_logger(__name__)


@dataclass(frozen=True)
class Background:
    """Worship background shown between hymns.

    Attributes:
        image: Background image name or path
    """

    image: str


SurfaceContent = Union[Slide, Background]


class SurfaceError(Exception):
    """Raised by a surface that cannot create itself or render content."""


class OutputSurface(ABC):
    """Opaque handle to the secondary display's output window."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the surface is currently created."""

    @property
    @abstractmethod
    def content(self) -> Optional[SurfaceContent]:
        """Content currently shown (None when blank)."""

    @abstractmethod
    def create(self, display: "DisplayInfo") -> None:
        """Create the output window on the given display."""

    @abstractmethod
    async def set_content(self, content: SurfaceContent) -> None:
        """Replace what is shown, without hiding the window."""

    @abstractmethod
    async def clear(self) -> None:
        """Release rendered content, leaving a black window."""

    @abstractmethod
    def destroy(self) -> None:
        """Tear down the output window. Must never raise."""


class MemorySurface(OutputSurface):
    """Headless surface that records what it was asked to show.

    Attributes:
        creations: Number of times the window was created
        destructions: Number of times the window was destroyed
        frames: Every content value rendered, in order (None for clears)
        render_delay: Seconds each content swap takes
        fail_next_render: Make the next set_content raise SurfaceError
    """

    def __init__(self, render_delay: float = 0.0):
        self.render_delay = render_delay
        self.creations = 0
        self.destructions = 0
        self.frames: list[Optional[SurfaceContent]] = []
        self.fail_next_render = False
        self._open = False
        self._content: Optional[SurfaceContent] = None
        self._display: Optional["DisplayInfo"] = None

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def content(self) -> Optional[SurfaceContent]:
        return self._content

    @property
    def display(self) -> Optional["DisplayInfo"]:
        return self._display

    def create(self, display: "DisplayInfo") -> None:
        if self._open:
            return
        self._open = True
        self._display = display
        self._content = None
        self.creations += 1
        logger.debug(f"Surface created on {display.description}")

    async def set_content(self, content: SurfaceContent) -> None:
        if not self._open:
            raise SurfaceError("surface is not open")
        if self.render_delay:
            await asyncio.sleep(self.render_delay)
        if self.fail_next_render:
            self.fail_next_render = False
            raise SurfaceError("render failed")
        self._content = content
        self.frames.append(content)

    async def clear(self) -> None:
        if not self._open:
            return
        self._content = None
        self.frames.append(None)

    def destroy(self) -> None:
        if not self._open:
            return
        self._open = False
        self._content = None
        self._display = None
        self.destructions += 1
        logger.debug("Surface destroyed")
