"""BrowserPath -- immutable, normalized browser path value object."""

from __future__ import annotations

from typing import Final

from remote_browser._errors import InvalidPath

ROOT = "/"


class BrowserPath:
    """An immutable, normalized absolute path within one connection.

    Normalized form is ``/``-separated with a leading slash and no trailing
    slash, except the root which is ``"/"``. Empty input means the root.

    :param raw: The raw path string to normalize and validate.
    :raises InvalidPath: If the path contains a null byte or a ``..`` segment.
    """

    __slots__ = ("_path",)
    _path: Final[str]  # type: ignore[misc]

    def __init__(self, raw: str = ROOT) -> None:
        normalized = self._normalize(raw)
        object.__setattr__(self, "_path", normalized)

    @staticmethod
    def _normalize(raw: str) -> str:
        if "\0" in raw:
            raise InvalidPath("Path contains null byte", path=raw)
        # Backslash → forward slash
        p = raw.replace("\\", "/")
        parts: list[str] = []
        for segment in p.split("/"):
            if segment == "" or segment == ".":
                continue
            if segment == "..":
                raise InvalidPath("Path contains '..' segment", path=raw)
            parts.append(segment)
        return ROOT + "/".join(parts)

    @property
    def is_root(self) -> bool:
        return self._path == ROOT

    @property
    def name(self) -> str:
        """Final component of the path, empty for the root."""
        return self._path.rsplit("/", 1)[-1]

    @property
    def parent(self) -> BrowserPath | None:
        """Parent path, or ``None`` for the root.

        Example: ``BrowserPath("/a/b").parent`` is ``BrowserPath("/a")`` and
        ``BrowserPath("/a").parent`` is the root.
        """
        if self.is_root:
            return None
        parent_str = self._path.rsplit("/", 1)[0] or ROOT
        p = object.__new__(BrowserPath)
        object.__setattr__(p, "_path", parent_str)
        return p

    @property
    def parts(self) -> tuple[str, ...]:
        """Tuple of path components (empty for the root)."""
        if self.is_root:
            return ()
        return tuple(self._path[1:].split("/"))

    @property
    def relative(self) -> str:
        """The path without its leading slash (``""`` for the root)."""
        return self._path[1:]

    def __truediv__(self, other: str) -> BrowserPath:
        return BrowserPath(f"{self._path}/{other}")

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"BrowserPath({self._path!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BrowserPath):
            return self._path == other._path
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._path)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"BrowserPath is immutable: cannot set '{name}'")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"BrowserPath is immutable: cannot delete '{name}'")


def normalize_path(raw: str | BrowserPath) -> str:
    """Return the normalized string form of ``raw``.

    :raises InvalidPath: If the path is malformed.
    """
    if isinstance(raw, BrowserPath):
        return str(raw)
    return str(BrowserPath(raw))
