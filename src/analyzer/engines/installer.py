"""Installer — resolve enabled engines and pull their images.

Algorithm (per enabled entry, in configuration order):

    resolve(name, channel)
      ├── not found → warn "unknown engine <name:channel>", continue
      └── found     → runtime.pull(image)
                        ├── ok     → continue
                        └── failed → raise ImagePullFailure(image), stop

Unknown engines are a configuration-authoring mistake and must not block
the engines that are valid. A pull failure is an infrastructure fault, so
the batch stops there. Images already pulled stay pulled.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Protocol

from analyzer.core.errors import EngineNotFoundError, ImagePullFailure
from analyzer.core.logging import get_logger
from analyzer.core.settings import DEFAULT_CHANNEL
from analyzer.engines.config import EngineConfigEntry
from analyzer.engines.registry import EngineRegistry, ResolvedEngine

logger = get_logger(__name__)


class ImagePuller(Protocol):
    """The part of the container runtime the installer needs."""

    def pull(self, image: str) -> bool:
        ...


def _stderr_warning(message: str) -> None:
    sys.stderr.write(f"WARNING: {message}\n")


@dataclass
class InstallReport:
    """What an install batch did."""

    pulled: list[ResolvedEngine] = field(default_factory=list)
    unknown: list[EngineNotFoundError] = field(default_factory=list)

    @property
    def images(self) -> list[str]:
        return [engine.image for engine in self.pulled]


class Installer:
    """Pulls the images of all enabled, resolvable engines."""

    def __init__(
        self,
        registry: EngineRegistry,
        runtime: ImagePuller,
        *,
        default_channel: str = DEFAULT_CHANNEL,
        warn: Callable[[str], None] | None = None,
    ):
        self._registry = registry
        self._runtime = runtime
        self._default_channel = default_channel
        self._warn = warn or _stderr_warning

    def install(self, entries: Iterable[EngineConfigEntry]) -> InstallReport:
        """Pull every enabled engine's image.

        Raises:
            ImagePullFailure: On the first pull the runtime reports as failed.
                No further entries are processed.
        """
        report = InstallReport()

        for entry in entries:
            if not entry.enabled:
                continue

            channel = entry.effective_channel(self._default_channel)
            try:
                engine = self._registry.resolve(entry.name, channel)
            except EngineNotFoundError as exc:
                logger.warning("unknown_engine", engine=entry.name, channel=channel)
                self._warn(exc.message)
                report.unknown.append(exc)
                continue

            self._pull(engine)
            report.pulled.append(engine)

        logger.info(
            "install_complete",
            pulled=len(report.pulled),
            unknown=len(report.unknown),
        )
        return report

    def _pull(self, engine: ResolvedEngine) -> None:
        logger.info("image_pull_started", engine=engine.name, channel=engine.channel, image=engine.image)
        if not self._runtime.pull(engine.image):
            logger.error("image_pull_failed", engine=engine.name, image=engine.image)
            raise ImagePullFailure(engine.image).with_context(
                engine=engine.name, channel=engine.channel
            )
        logger.info("image_pulled", engine=engine.name, image=engine.image)
