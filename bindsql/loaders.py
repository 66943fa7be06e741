"""Query loaders used to resolve directives that reference externally stored SQL."""

import importlib.resources
import logging
import mimetypes
import pathlib
import posixpath
from abc import ABC, abstractmethod
from typing import BinaryIO, Mapping, Optional, Union

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class QueryLoader(ABC):
    """Interface for loading SQL text by name."""

    @abstractmethod
    def get(self, name: str) -> str:
        """Return the SQL text stored under the given name.

        :param name: the name of the query, including its extension
        :returns: the SQL text
        :raises: an exception of the implementation's choosing if the query cannot be loaded
        """
        pass  # pragma: no cover


class ResourceFS:
    """A read only tree of resources, either a directory on disk or data shipped inside a python package.

    :param source: a directory path or an ``importlib.resources`` traversable
    :param root_path: a path inside the source all file names are relative to
    :param dont_prefix: when set, file names are taken relative to the source itself rather than the root path
    """

    def __init__(self, source: Union[str, pathlib.Path, "importlib.resources.abc.Traversable"], root_path: str = "",
                 dont_prefix: bool = False):  # noqa: D107
        self.source = pathlib.Path(source) if isinstance(source, str) else source
        self.root_path = root_path
        self.dont_prefix = dont_prefix

    def absolute(self, filename: str) -> str:
        """Return the path of the given file inside the source."""
        if not self.dont_prefix:
            return posixpath.normpath(posixpath.join(self.root_path, filename))
        return filename.lstrip("/")

    def node(self, path: str):
        """Return the traversable found at a path relative to the source, without applying the root path."""
        node = self.source
        for part in posixpath.normpath(path).split("/"):
            if part and part != ".":
                node = node.joinpath(part)
        return node

    def _existing(self, filename: str):
        node = self.node(self.absolute(filename))
        if not node.is_file():
            raise FileNotFoundError(f"No such resource: {self.absolute(filename)}")
        return node

    def probe_type(self, filename: str) -> Optional[str]:
        """Guess the mime type of an existing file from its extension.

        :raises: FileNotFoundError
        """
        node = self._existing(filename)
        mime_type, _ = mimetypes.guess_type(node.name)
        return mime_type

    def size(self, filename: str) -> int:
        """Return the size of an existing file in bytes.

        :raises: FileNotFoundError
        """
        node = self._existing(filename)
        if hasattr(node, "stat"):
            return node.stat().st_size
        return len(node.read_bytes())

    def write_to(self, filename: str, stream: BinaryIO) -> int:
        """Copy an existing file to a binary stream.

        :returns: the number of bytes written
        :raises: FileNotFoundError
        """
        written = 0
        with self._existing(filename).open("rb") as fh:
            chunk = fh.read(CHUNK_SIZE)
            while chunk:
                stream.write(chunk)
                written += len(chunk)
                chunk = fh.read(CHUNK_SIZE)
        return written


class ResourceFSQueryLoader(QueryLoader):
    """Loads queries from a :class:`ResourceFS`, always relative to its root path."""

    def __init__(self, resources: ResourceFS):  # noqa: D107
        self._resources = resources

    def get(self, name: str) -> str:  # noqa: D102
        path = posixpath.join(self._resources.root_path, name)
        logger.debug(f"Loading query {path}")
        return self._resources.node(path).read_text(encoding="utf-8")


class FileSystemQueryLoader(ResourceFSQueryLoader):
    """Loads queries from files under a directory.

    Example::

        loader = FileSystemQueryLoader("./sql")
        loader.get("insert_user.sql")  # reads ./sql/insert_user.sql
    """

    def __init__(self, directory: Union[str, pathlib.Path], root_path: str = ""):  # noqa: D107
        super().__init__(ResourceFS(pathlib.Path(directory), root_path))


class PackageQueryLoader(ResourceFSQueryLoader):
    """Loads queries shipped as data files inside an importable package."""

    def __init__(self, package: str, root_path: str = ""):  # noqa: D107
        super().__init__(ResourceFS(importlib.resources.files(package), root_path))


class DictQueryLoader(QueryLoader):
    """Loads queries from an in memory mapping of names to SQL text."""

    def __init__(self, queries: Mapping[str, str]):  # noqa: D107
        self._queries = dict(queries)

    def get(self, name: str) -> str:  # noqa: D102
        if name not in self._queries:
            raise FileNotFoundError(f"No query named '{name}'")
        return self._queries[name]
