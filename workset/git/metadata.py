"""Direct reads of git metadata: HEAD, refs, packed-refs, and config files.

These helpers answer "which commit is HEAD" and "what is this branch's
upstream" without spawning ``git``. They never touch object data. All
readers return ``None``/empty on missing or malformed input; callers decide
whether that is worth a warning.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

_SHA_RE = re.compile(r"^[0-9a-f]{40}([0-9a-f]{24})?$")
_SECTION_RE = re.compile(r'^\[\s*([A-Za-z0-9.\-]+)(?:\s+"((?:[^"\\]|\\.)*)")?\s*\]\s*(?:[#;].*)?$')
MAX_SYMREF_DEPTH = 5


@dataclass(frozen=True)
class ConfigSection:
    """One ``[name "subsection"]`` block with its entries in file order."""

    name: str
    subsection: str | None
    entries: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class GitConfig:
    """Parsed git-config style file (also used for ``.gitmodules``)."""

    sections: tuple[ConfigSection, ...] = ()

    def get_all(self, name: str, subsection: str | None, key: str) -> list[str]:
        """Return every value of ``key`` across matching sections, in order."""
        wanted_name = name.lower()
        wanted_key = key.lower()
        values: list[str] = []
        for section in self.sections:
            if section.name != wanted_name or section.subsection != subsection:
                continue
            values.extend(value for entry_key, value in section.entries if entry_key == wanted_key)
        return values

    def get(self, name: str, subsection: str | None, key: str) -> str | None:
        """Return the last value of ``key`` (git's "last one wins" rule)."""
        values = self.get_all(name, subsection, key)
        return values[-1] if values else None

    def subsections(self, name: str) -> list[str]:
        """Return distinct subsection names of ``name`` in first-seen order."""
        wanted_name = name.lower()
        seen: list[str] = []
        for section in self.sections:
            if section.name == wanted_name and section.subsection is not None and section.subsection not in seen:
                seen.append(section.subsection)
        return seen


@dataclass(frozen=True)
class HeadState:
    """Resolved HEAD: symbolic branch ref (if any) and commit id (if born)."""

    ref: str | None
    commit: str | None

    @property
    def branch(self) -> str | None:
        if self.ref is None or not self.ref.startswith("refs/heads/"):
            return None
        return self.ref[len("refs/heads/"):]

    @property
    def detached(self) -> bool:
        return self.ref is None and self.commit is not None


@dataclass
class _SectionBuilder:
    name: str
    subsection: str | None
    entries: list[tuple[str, str]] = field(default_factory=list)

    def freeze(self) -> ConfigSection:
        return ConfigSection(self.name, self.subsection, tuple(self.entries))


def _strip_value(raw: str) -> str:
    """Drop inline comments outside quotes, unquote, and process escapes."""
    out: list[str] = []
    in_quotes = False
    index = 0
    while index < len(raw):
        char = raw[index]
        if char == "\\" and index + 1 < len(raw):
            escaped = raw[index + 1]
            out.append({"n": "\n", "t": "\t", "b": "\b"}.get(escaped, escaped))
            index += 2
            continue
        if char == '"':
            in_quotes = not in_quotes
            index += 1
            continue
        if not in_quotes and char in "#;":
            break
        out.append(char)
        index += 1
    return "".join(out).strip()


def parse_git_config(text: str) -> GitConfig:
    """Parse git-config syntax.

    Section and key names are case-insensitive (lowercased); subsection names
    keep their case. Legacy ``[section.sub]`` headers map to subsection
    ``sub``. A key with no ``=`` is the boolean ``"true"``.
    """
    sections: list[_SectionBuilder] = []
    current: _SectionBuilder | None = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line[0] in "#;":
            continue
        if line.startswith("["):
            match = _SECTION_RE.match(line)
            if match is None:
                current = None
                continue
            name, subsection = match.group(1), match.group(2)
            if subsection is None and "." in name:
                name, _, legacy_sub = name.partition(".")
                subsection = legacy_sub
            elif subsection is not None:
                subsection = re.sub(r"\\(.)", r"\1", subsection)
            current = _SectionBuilder(name.lower(), subsection)
            sections.append(current)
            continue
        if current is None:
            continue

        key, sep, value = line.partition("=")
        key = key.strip().lower()
        if not key:
            continue
        current.entries.append((key, _strip_value(value) if sep else "true"))

    return GitConfig(tuple(section.freeze() for section in sections))


def read_git_config(path: Path) -> GitConfig | None:
    """Read and parse a config file, returning ``None`` when unreadable."""
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return parse_git_config(text)


def looks_like_git_dir(path: Path) -> bool:
    """Return whether ``path`` has the shape of a git metadata directory."""
    try:
        return (path / "HEAD").is_file() and (path / "objects").is_dir() and (path / "refs").is_dir()
    except OSError:
        return False


def resolve_git_dir(repo_path: Path) -> Path | None:
    """Locate the metadata directory for a worktree or bare repository.

    Handles ``.git`` directories, ``gitdir:`` pointer files (submodules and
    linked worktrees), and bare repositories passed directly.
    """
    dot_git = repo_path / ".git"
    try:
        if dot_git.is_dir():
            return dot_git
        if dot_git.is_file():
            content = dot_git.read_text(encoding="utf-8", errors="replace").strip()
            if not content.startswith("gitdir:"):
                return None
            target = Path(content[len("gitdir:"):].strip())
            if not target.is_absolute():
                target = (repo_path / target).resolve()
            return target if target.is_dir() else None
    except OSError:
        return None
    if looks_like_git_dir(repo_path):
        return repo_path
    return None


def common_dir(git_dir: Path) -> Path:
    """Return the shared metadata directory (differs only for linked worktrees)."""
    try:
        raw = (git_dir / "commondir").read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return git_dir
    if not raw:
        return git_dir
    target = Path(raw)
    return target if target.is_absolute() else (git_dir / target).resolve()


def read_packed_refs(git_dir: Path) -> dict[str, str]:
    """Parse ``packed-refs`` into ``{refname: sha}``; peeled lines are skipped."""
    packed: dict[str, str] = {}
    try:
        text = (common_dir(git_dir) / "packed-refs").read_text(encoding="utf-8", errors="replace")
    except OSError:
        return packed
    for line in text.splitlines():
        if not line or line.startswith("#") or line.startswith("^"):
            continue
        sha, _, refname = line.partition(" ")
        if refname and _SHA_RE.match(sha):
            packed[refname.strip()] = sha
    return packed


def _read_ref_file(git_dir: Path, refname: str) -> str | None:
    base = git_dir if refname == "HEAD" or "/" not in refname else common_dir(git_dir)
    try:
        return (base / refname).read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return None


def resolve_ref(git_dir: Path, refname: str, _depth: int = 0) -> str | None:
    """Resolve a (possibly symbolic) ref name to a commit id."""
    if _depth > MAX_SYMREF_DEPTH:
        return None
    content = _read_ref_file(git_dir, refname)
    if content is None:
        return read_packed_refs(git_dir).get(refname)
    if content.startswith("ref:"):
        return resolve_ref(git_dir, content[4:].strip(), _depth + 1)
    return content if _SHA_RE.match(content) else None


def read_head(git_dir: Path) -> HeadState | None:
    """Return the HEAD state, or ``None`` if HEAD is missing or malformed."""
    content = _read_ref_file(git_dir, "HEAD")
    if not content:
        return None
    if content.startswith("ref:"):
        ref = content[4:].strip()
        return HeadState(ref=ref, commit=resolve_ref(git_dir, ref))
    if _SHA_RE.match(content):
        return HeadState(ref=None, commit=content)
    return None


def read_repo_config(git_dir: Path) -> GitConfig:
    """Return the repository config (empty when unreadable)."""
    return read_git_config(common_dir(git_dir) / "config") or GitConfig()


def _apply_refspec(refspec: str, source_ref: str) -> str | None:
    """Map ``source_ref`` through one fetch refspec (``+src:dst`` with ``*``)."""
    spec = refspec.lstrip("+")
    src, sep, dst = spec.partition(":")
    if not sep or not dst:
        return None
    if "*" not in src:
        return dst if src == source_ref else None
    prefix, _, suffix = src.partition("*")
    if not (source_ref.startswith(prefix) and source_ref.endswith(suffix)):
        return None
    middle = source_ref[len(prefix):len(source_ref) - len(suffix) if suffix else None]
    return dst.replace("*", middle, 1)


def upstream_ref(config: GitConfig, branch: str) -> str | None:
    """Return the local tracking ref name for ``branch``'s configured upstream.

    ``None`` when ``branch.<name>.remote`` or ``branch.<name>.merge`` is unset.
    """
    remote = config.get("branch", branch, "remote")
    merge = config.get("branch", branch, "merge")
    if not remote or not merge:
        return None
    if remote == ".":
        return merge
    for refspec in config.get_all("remote", remote, "fetch"):
        mapped = _apply_refspec(refspec, merge)
        if mapped is not None:
            return mapped
    if merge.startswith("refs/heads/"):
        return f"refs/remotes/{remote}/{merge[len('refs/heads/'):]}"
    return None


__all__ = [
    "ConfigSection",
    "GitConfig",
    "HeadState",
    "common_dir",
    "looks_like_git_dir",
    "parse_git_config",
    "read_git_config",
    "read_head",
    "read_packed_refs",
    "read_repo_config",
    "resolve_git_dir",
    "resolve_ref",
    "upstream_ref",
]
