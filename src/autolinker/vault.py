"""Markdown vault on disk as a document store: titles, frontmatter tags, headings, block ids."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path

import yaml

from .models import DocumentMetadata

log = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---", re.DOTALL)
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
_BLOCK_ID_RE = re.compile(r"(?:^|\s)\^([A-Za-z0-9-]+)[ \t]*$")


def is_markdown(path: str | Path) -> bool:
    return Path(path).suffix == ".md"


def _split_tags(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [str(v) for v in value if v is not None]
    else:
        return []
    tags: list[str] = []
    for item in items:
        tag = item.strip().lstrip("#")
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def parse_frontmatter_tags(text: str) -> list[str]:
    m = _FRONTMATTER_RE.match(text)
    if not m:
        return []
    try:
        data = yaml.safe_load(m.group(1))
    except yaml.YAMLError:
        log.debug("Malformed frontmatter, ignoring tags", exc_info=True)
        return []
    if not isinstance(data, dict):
        return []
    return _split_tags(data.get("tags"))


def parse_metadata(title: str, text: str) -> DocumentMetadata:
    """Extract structural metadata from markdown *text*."""
    body = text
    m = _FRONTMATTER_RE.match(text)
    if m:
        body = text[m.end():]

    headings: list[str] = []
    block_ids: list[str] = []
    in_fence = False
    for line in body.splitlines():
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        heading = _HEADING_RE.match(line)
        if heading:
            headings.append(heading.group(2).strip())
            continue
        block = _BLOCK_ID_RE.search(line)
        if block and block.group(1) not in block_ids:
            block_ids.append(block.group(1))

    return DocumentMetadata(
        title=title,
        tags=parse_frontmatter_tags(text),
        headings=headings,
        block_ids=block_ids,
    )


class MarkdownVault:
    """A directory of ``.md`` notes. Source ids are vault-relative POSIX paths."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    def source_id_for(self, path: str | Path) -> str:
        path = Path(path)
        if path.is_absolute():
            path = path.relative_to(self.root)
        return path.as_posix()

    def path_for(self, source_id: str) -> Path:
        return self.root / source_id

    def read_metadata(self, path: str | Path) -> DocumentMetadata:
        path = Path(path)
        text = path.read_text(encoding="utf-8", errors="replace")
        return parse_metadata(path.stem, text)

    def _markdown_files(self) -> list[Path]:
        files = []
        for md_file in self.root.rglob("*.md"):
            rel = md_file.relative_to(self.root)
            # Skip .obsidian, .trash and other hidden folders
            if any(part.startswith(".") for part in rel.parts[:-1]):
                continue
            files.append(md_file)
        return sorted(files)

    def list_all_documents(self) -> Iterator[tuple[str, DocumentMetadata]]:
        if not self.root.is_dir():
            raise FileNotFoundError(f"Vault directory does not exist: {self.root}")

        for md_file in self._markdown_files():
            try:
                metadata = self.read_metadata(md_file)
            except OSError:
                log.warning("Failed to read %s, skipping", md_file, exc_info=True)
                continue
            yield self.source_id_for(md_file), metadata
