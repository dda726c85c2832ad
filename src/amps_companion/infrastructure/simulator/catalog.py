"""Seeded demo catalog served by the controller simulator."""

from __future__ import annotations

from amps_companion.domain.content.entities import Content, ContentMetadata
from amps_companion.domain.content.repository import ContentCatalog
from amps_companion.domain.shared.constants import SimulatorDefaults

_GENRES = ("Pop", "Rock", "Electronic")
_KEYS = ("C", "D", "E", "F", "G")


def demo_content(index: int) -> Content:
    """Build the ``index``-th (1-based) demo entry."""
    return Content(
        id=f"content-{index}",
        title=f"Mock Track {index}",
        artist=f"Mock Artist {index}",
        duration=120 + 30 * (index - 1),
        audio_url=f"/mock-audio/track-{index}.mp3",
        metadata=ContentMetadata(
            genre=_GENRES[(index - 1) % len(_GENRES)],
            year=2020 + (index % 4),
            bpm=120 + 10 * (index - 1),
            key=_KEYS[(index - 1) % len(_KEYS)],
        ),
    )


class DemoCatalog(ContentCatalog):
    """A fixed in-memory catalog.

    Unknown ids resolve to a synthesized placeholder so any content id can be
    queued against the simulator.
    """

    def __init__(
        self,
        entries: list[Content] | None = None,
        *,
        default_duration: float = SimulatorDefaults.TRACK_DURATION_SECONDS,
    ) -> None:
        if entries is None:
            entries = [demo_content(i) for i in range(1, SimulatorDefaults.CATALOG_SIZE + 1)]
        self._entries: dict[str, Content] = {entry.id: entry for entry in entries}
        self._default_duration = default_duration

    def __len__(self) -> int:
        return len(self._entries)

    async def search(self, query: str, limit: int) -> list[Content]:
        if limit <= 0:
            return []
        entries = list(self._entries.values())
        matching = [entry for entry in entries if entry.matches(query)]
        rest = [entry for entry in entries if not entry.matches(query)]
        return (matching + rest)[:limit]

    async def get(self, content_id: str) -> Content:
        entry = self._entries.get(content_id)
        if entry is not None:
            return entry
        return Content(
            id=content_id,
            title=f"Track {content_id}",
            artist=SimulatorDefaults.UNKNOWN_ARTIST,
            duration=self._default_duration,
            audio_url=f"/mock-audio/{content_id}.mp3",
        )
