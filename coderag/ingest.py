from __future__ import annotations

import os
from pathlib import Path
from typing import AbstractSet, Iterable, List, Sequence

from .types import ChunkRecord, SourceFile
from .utils import chunk_text, read_text_file


def _is_ignored(path: Path, root: Path, ignore_dirs: AbstractSet[str]) -> bool:
    return any(part in ignore_dirs for part in path.relative_to(root).parts[:-1])


def _relative_path(root_dir: Path, path: Path) -> str:
    return Path(os.path.relpath(path, root_dir)).as_posix()


def scan_files(
    root_dir: str | Path,
    extensions: Sequence[str],
    ignore_dirs: AbstractSet[str],
) -> List[Path]:
    root = Path(root_dir)
    if not root.exists():
        raise FileNotFoundError(f"path does not exist -> {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"path is not a directory -> {root}")

    files: List[Path] = []
    for ext in extensions:
        files.extend(root.rglob(f"*{ext}"))
    unique = {path for path in files if path.is_file() and not _is_ignored(path, root, ignore_dirs)}
    return sorted(unique)


def load_sources(root_dir: str | Path, files: Iterable[str | Path]) -> List[SourceFile]:
    root = Path(root_dir)
    sources: List[SourceFile] = []
    for file in files:
        path = Path(file)
        rel_path = _relative_path(root, path)
        try:
            text = read_text_file(path)
        except (OSError, UnicodeDecodeError) as exc:
            sources.append(SourceFile(path=str(path), rel_path=rel_path, skip_reason=str(exc)))
            continue
        sources.append(SourceFile(path=str(path), rel_path=rel_path, text=text))
    return sources


def chunk_sources(
    sources: Iterable[SourceFile],
    *,
    chunk_size: int,
    chunk_overlap: int,
) -> List[ChunkRecord]:
    chunks: List[ChunkRecord] = []
    chunk_id = 0
    for source in sources:
        if not source.readable:
            continue
        for part in chunk_text(source.text, chunk_size, chunk_overlap):
            chunks.append(ChunkRecord(id=chunk_id, rel_path=source.rel_path, text=part))
            chunk_id += 1
    return chunks


def index_project(
    root_dir: str | Path,
    files: Iterable[str | Path],
    *,
    chunk_size: int,
    chunk_overlap: int,
) -> List[ChunkRecord]:
    sources = load_sources(root_dir, files)
    return chunk_sources(sources, chunk_size=chunk_size, chunk_overlap=chunk_overlap)
