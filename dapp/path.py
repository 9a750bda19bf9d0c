# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Path validity checks for dapp.

Predicates that tell whether a path exists and what the current process may
do with it. Every call queries the filesystem again; nothing is cached.

All functions accept anything ``os.fspath`` understands, or None. A None
path is treated as a path that satisfies no predicate, so callers can pass
an optional value straight through.

Creatability
------------
A path is creatable when its largest valid subset (the innermost part of
the path that already exists, found by walking up through its parents) is
writable. This is a heuristic: it does not check that every missing
intermediate directory could really be made.

Iterables of paths
------------------
The ``first_*`` and ``all_*`` helpers consume the iterable they are given.
``all_*`` return generators, so nothing is checked until they are iterated.
Pass a fresh iterable for each query when checking one list of candidates
against several predicates. None items are skipped.

Example:
    Pick a config file and a log directory:

        from pathlib import Path
        from dapp.path import first_readable_path, is_creatable

        candidates = [Path("./app.yaml"), Path.home() / ".config/app.yaml"]
        config_file = first_readable_path(candidates)

        log_dir = Path("/var/log/app")
        if not is_creatable(log_dir):
            log_dir = Path.home() / ".local/state/app"
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
import os
from pathlib import Path
from typing import TypeVar, Union

PathLike = Union[str, os.PathLike]

P = TypeVar("P", bound=PathLike)

__all__ = [
    "exists",
    "is_readable",
    "is_writable",
    "is_executable",
    "is_creatable",
    "largest_valid_subset",
    "first_valid_path",
    "all_valid_paths",
    "first_existing_path",
    "first_readable_path",
    "first_writable_path",
    "first_executable_path",
    "first_creatable_path",
    "all_existing_paths",
    "all_readable_paths",
    "all_writable_paths",
    "all_executable_paths",
    "all_creatable_paths",
]


# -------------------------------
# Single path predicates
# -------------------------------


def exists(path: PathLike | None) -> bool:
    """Return True if something exists at the path."""
    if path is None:
        return False
    # False on any OSError, not only ENOENT
    return os.path.exists(path)


def _access(path: PathLike | None, mode: int) -> bool:
    if path is None or not exists(path):
        return False
    return os.access(path, mode)


def is_readable(path: PathLike | None) -> bool:
    """Return True if the path exists and the process may read it."""
    return _access(path, os.R_OK)


def is_writable(path: PathLike | None) -> bool:
    """Return True if the path exists and the process may write to it."""
    return _access(path, os.W_OK)


def is_executable(path: PathLike | None) -> bool:
    """Return True if the path exists and the process may execute it.

    For directories this means the directory can be entered.
    """
    return _access(path, os.X_OK)


def largest_valid_subset(path: PathLike | None) -> Path | None:
    """Find the innermost existing file or parent directory of a path.

    Args:
        path: The path to inspect. It does not need to exist.

    Returns:
        The path itself if it exists, otherwise the nearest existing
        ancestor. None if no ancestor exists, or if path is None.

    Example:
        ```python
        largest_valid_subset("/tmp/not/yet/there")  # PosixPath('/tmp')
        ```
    """
    if path is None:
        return None
    current = Path(path)
    while not exists(current):
        parent = current.parent
        # "/" and "." are their own parents
        if parent == current:
            return None
        current = parent
    return current


def is_creatable(path: PathLike | None) -> bool:
    """Return True if the path could be created by this process.

    An existing path counts as creatable when it is writable.
    """
    subset = largest_valid_subset(path)
    if subset is None:
        return False
    return is_writable(subset)


# -------------------------------
# Iterables of paths
# -------------------------------


def first_valid_path(
    paths: Iterable[P | None], predicate: Callable[[P], bool]
) -> P | None:
    """Return the first path satisfying predicate, or None.

    Consumes ``paths`` up to and including the match.
    """
    for path in paths:
        if path is not None and predicate(path):
            return path
    return None


def all_valid_paths(
    paths: Iterable[P | None], predicate: Callable[[P], bool]
) -> Iterator[P]:
    """Lazily yield every path satisfying predicate, in input order."""
    for path in paths:
        if path is not None and predicate(path):
            yield path


def first_existing_path(paths: Iterable[P | None]) -> P | None:
    return first_valid_path(paths, exists)


def first_readable_path(paths: Iterable[P | None]) -> P | None:
    return first_valid_path(paths, is_readable)


def first_writable_path(paths: Iterable[P | None]) -> P | None:
    return first_valid_path(paths, is_writable)


def first_executable_path(paths: Iterable[P | None]) -> P | None:
    return first_valid_path(paths, is_executable)


def first_creatable_path(paths: Iterable[P | None]) -> P | None:
    return first_valid_path(paths, is_creatable)


def all_existing_paths(paths: Iterable[P | None]) -> Iterator[P]:
    return all_valid_paths(paths, exists)


def all_readable_paths(paths: Iterable[P | None]) -> Iterator[P]:
    return all_valid_paths(paths, is_readable)


def all_writable_paths(paths: Iterable[P | None]) -> Iterator[P]:
    return all_valid_paths(paths, is_writable)


def all_executable_paths(paths: Iterable[P | None]) -> Iterator[P]:
    return all_valid_paths(paths, is_executable)


def all_creatable_paths(paths: Iterable[P | None]) -> Iterator[P]:
    return all_valid_paths(paths, is_creatable)


# Predicate names used by the CLI
PREDICATES: dict[str, Callable[[PathLike | None], bool]] = {
    "exists": exists,
    "readable": is_readable,
    "writable": is_writable,
    "executable": is_executable,
    "creatable": is_creatable,
}
