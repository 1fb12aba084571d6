"""
Audio Infrastructure
====================

Playable sound resources and the subsystem that owns them:
- AudioOutput: where decoded bytes end up (an external player process)
- SoundResource: one handle bound to one sound file
- AudioSubsystem: unlock state, HTTP loading and the preload cache
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set

import httpx

from config import settings
from core import AudioLockedException, AudioPlaybackException
from notifications.domain import SOUND_OPTIONS, resolve_sound_url
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AudioOutput(ABC):
    """Interface for the device that actually renders sound."""

    @abstractmethod
    async def play(self, data: bytes, volume: float, label: str) -> None:
        """Start playback; raise AudioPlaybackException if it cannot start."""

    async def close(self) -> None:
        """Release any playback still in flight."""


class SubprocessAudioOutput(AudioOutput):
    """
    Pipes sound bytes into an external player process.

    ``{volume}`` in the command is replaced by the volume as 0-100. ``play``
    feeds the bytes, then waits up to ``startup_grace`` seconds: a player
    that exits non-zero inside that window (bad bytes, no device) counts as
    a failed start. A failure after the window is only logged.
    """

    def __init__(self, command: Optional[List[str]] = None, startup_grace: Optional[float] = None):
        self._command = list(command or settings.audio_player_command)
        self._startup_grace = (
            settings.audio_startup_grace_seconds if startup_grace is None else startup_grace
        )
        self._tasks: Set[asyncio.Task] = set()
        self._processes: Set[asyncio.subprocess.Process] = set()

    def _build_command(self, volume: float) -> List[str]:
        percent = str(int(round(volume * 100)))
        return [part.replace("{volume}", percent) for part in self._command]

    async def play(self, data: bytes, volume: float, label: str) -> None:
        command = self._build_command(volume)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise AudioPlaybackException(
                f"player could not start: {e}",
                {"command": command[0], "sound": label}
            ) from e

        try:
            if process.stdin is not None:
                process.stdin.write(data)
                await process.stdin.drain()
                process.stdin.close()
            return_code = await asyncio.wait_for(process.wait(), timeout=self._startup_grace)
        except asyncio.TimeoutError:
            # still playing
            self._processes.add(process)
            task = asyncio.create_task(self._reap(process, label))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return
        except (BrokenPipeError, ConnectionResetError) as e:
            return_code = await process.wait()
            raise AudioPlaybackException(
                f"player closed its input: {e}",
                {"sound": label, "return_code": return_code}
            ) from e

        if return_code != 0:
            raise AudioPlaybackException(
                f"player exited with status {return_code}",
                {"sound": label, "return_code": return_code}
            )

    async def _reap(self, process: asyncio.subprocess.Process, label: str) -> None:
        try:
            return_code = await process.wait()
            if return_code != 0:
                logger.warning(
                    "Audio player exited with error",
                    extra={"sound": label, "return_code": return_code}
                )
        finally:
            self._processes.discard(process)

    async def close(self) -> None:
        for process in list(self._processes):
            if process.returncode is None:
                process.kill()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self._processes.clear()


class SoundResource:
    """
    A playable handle bound to one sound file.

    Mirrors a media element: it must be loaded before it can play, has a
    playback position and volume, and refuses to play while the owning
    subsystem is locked. The silent resource plays nothing and always
    succeeds once unlocked.
    """

    def __init__(
        self,
        subsystem: "AudioSubsystem",
        sound: str,
        url: Optional[str],
        preload: bool = True
    ):
        self._subsystem = subsystem
        self.sound = sound
        self.url = url
        self.preload = preload
        self.volume = 0.0 if url is None else 1.0
        self.position = 0.0
        self.playing = False
        self._data: Optional[bytes] = None
        self.last_error: Optional[str] = None

    @property
    def is_silent(self) -> bool:
        return self.url is None

    @property
    def ready(self) -> bool:
        """Whether the resource can start playing right now."""
        return self.is_silent or self._data is not None

    async def load(self) -> bool:
        """
        Fetch the sound bytes.

        Returns:
            True when the resource is ready; failures are logged, not raised.
        """
        if self.is_silent:
            return True
        try:
            self._data = await self._subsystem.fetch(self.url)
        except AudioPlaybackException as e:
            self._data = None
            self.last_error = e.message
            logger.error(
                "Failed to load sound",
                extra={"sound": self.sound, "url": self.url, "error": e.message}
            )
            return False

        self.last_error = None
        logger.debug("Sound loaded", extra={"sound": self.sound, "bytes": len(self._data)})
        return True

    def rewind(self) -> None:
        self.position = 0.0

    def pause(self) -> None:
        """Stop treating the handle as playing; position is kept."""
        self.playing = False

    async def play(self) -> None:
        """Start playback from the current position."""
        if not self._subsystem.unlocked:
            raise AudioLockedException(self.sound)
        if self.is_silent:
            return
        if self._data is None:
            raise AudioPlaybackException(
                "resource not ready",
                {"sound": self.sound, "url": self.url}
            )
        await self._subsystem.output.play(self._data, self.volume, self.sound)
        self.playing = True
        logger.debug("Sound started", extra={"sound": self.sound, "volume": self.volume})

    def release(self) -> None:
        """Drop loaded data; the handle must be loaded again to play."""
        self._data = None
        self.playing = False
        self.position = 0.0


class AudioSubsystem:
    """
    Owner of all audio state: the one-way unlock flag, the HTTP client used
    to load sounds, the output device and the cache of preloaded resources.

    Passed explicitly to the dispatcher; nothing else mutates it.
    """

    def __init__(
        self,
        output: AudioOutput,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.output = output
        self.base_url = base_url or settings.sound_base_url
        self.unlocked = False
        self._cache: Dict[str, SoundResource] = {}
        self._http_client = client
        self._owns_client = client is None

    def unlock(self) -> bool:
        """
        Permit automatic playback from now on.

        Returns:
            True if this call performed the transition.
        """
        if self.unlocked:
            return False
        self.unlocked = True
        logger.info("Audio unlocked")
        return True

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=settings.http_timeout_seconds
            )
        return self._http_client

    async def fetch(self, url: str) -> bytes:
        """Download a sound file."""
        client = await self._get_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AudioPlaybackException(f"could not fetch {url}: {e}", {"url": url}) from e
        return response.content

    def create_resource(self, sound: str, preload: bool = True) -> SoundResource:
        """New, unloaded handle for a sound; never cached."""
        return SoundResource(self, sound, resolve_sound_url(sound, self.base_url), preload=preload)

    def get_cached(self, sound: str) -> Optional[SoundResource]:
        return self._cache.get(sound)

    @property
    def cached_sounds(self) -> List[str]:
        return sorted(self._cache)

    async def preload_all(self, sounds: Optional[Iterable[str]] = None) -> int:
        """
        Warm the cache with every known sound.

        Returns:
            Number of sounds that loaded successfully.
        """
        names = list(sounds) if sounds is not None else list(SOUND_OPTIONS)
        self._cache.clear()

        loaded = 0
        for sound in names:
            resource = self.create_resource(sound)
            if await resource.load():
                self._cache[sound] = resource
                loaded += 1

        logger.info("Sounds preloaded", extra={"requested": len(names), "loaded": loaded})
        return loaded

    def describe(self) -> dict:
        """Diagnostic snapshot of the audio state."""
        return {
            "unlocked": self.unlocked,
            "base_url": self.base_url,
            "cached_sounds": self.cached_sounds,
        }

    async def close(self) -> None:
        """Release output, cache and HTTP client."""
        await self.output.close()
        self._cache.clear()
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
