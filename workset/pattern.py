"""Repository patterns of the form ``[provider/]path``.

The first ``/``-delimited segment is treated as a provider only when it looks
like a domain (contains a ``.``), e.g. ``github.com/user/repo``.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import PatternError


@dataclass(frozen=True)
class RepoPattern:
    """A pattern matching one or more repositories."""

    provider: str | None
    path: str

    @classmethod
    def parse(cls, text: str) -> RepoPattern:
        """Parse ``text``; raises ``PatternError`` for empty input."""
        cleaned = text.strip()
        if cleaned.startswith("./"):
            cleaned = cleaned[2:]
        cleaned = cleaned.rstrip("/")
        if not cleaned:
            raise PatternError(f"invalid repository pattern: {text!r}")

        first, sep, rest = cleaned.partition("/")
        if sep and "." in first and rest:
            return cls(provider=first, path=rest)
        return cls(provider=None, path=cleaned)

    def provider_and_path(self) -> tuple[str, str] | None:
        """Return ``(provider, path)`` when a provider was parsed."""
        if self.provider is None:
            return None
        return self.provider, self.path

    def full_path(self) -> str:
        """Reconstitute ``provider/path`` or the bare ``path``."""
        if self.provider is None:
            return self.path
        return f"{self.provider}/{self.path}"

    def matches(self, candidate: str) -> bool:
        """Exact, suffix, or path-contains match against a ``/``-joined path."""
        full = self.full_path()
        if candidate == full:
            return True
        if candidate.endswith(full):
            return True
        return self.path in candidate

    def __str__(self) -> str:
        return self.full_path()


__all__ = ["RepoPattern"]
