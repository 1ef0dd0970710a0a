"""Path exclusion policy for repository crawling."""

from __future__ import annotations

from typing import Iterable

from repo_rover.core.config import Settings


class ExclusionFilter:
    """Decide whether a repository path is worth indexing.

    A path is rejected when any of its segments equals an excluded marker
    (dependency folders, build output, lockfiles, VCS metadata). Files must in
    addition carry an allowed extension or be an allowed basename.
    Directories are only checked against the markers.
    """

    def __init__(
        self,
        exclude_markers: Iterable[str],
        include_extensions: Iterable[str],
        include_filenames: Iterable[str] = (),
    ) -> None:
        self.exclude_markers = frozenset(marker.strip("/") for marker in exclude_markers if marker.strip("/"))
        self.include_extensions = tuple(ext.lower() for ext in include_extensions)
        self.include_filenames = frozenset(include_filenames)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExclusionFilter":
        return cls(
            exclude_markers=settings.exclude_markers,
            include_extensions=settings.include_extensions,
            include_filenames=settings.include_filenames,
        )

    def is_indexable(self, path: str, is_dir: bool = False) -> bool:
        segments = [segment for segment in path.replace("\\", "/").split("/") if segment]
        if not segments:
            return is_dir
        if any(segment in self.exclude_markers for segment in segments):
            return False
        if is_dir:
            return True
        basename = segments[-1]
        if basename in self.include_filenames:
            return True
        return basename.lower().endswith(self.include_extensions)


__all__ = ["ExclusionFilter"]
