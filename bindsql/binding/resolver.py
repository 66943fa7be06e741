"""Resolves the query text of a directive into the SQL a binding runs."""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from bindsql.binding.errors import QueryLoadError
from bindsql.loaders import QueryLoader


class QueryOrigin(enum.Enum):
    """Where the SQL of a binding came from."""

    LITERAL = "literal"
    LOADED = "loaded"


@dataclass(frozen=True)
class ResolvedQuery:
    """SQL text fixed at bind time, along with where it came from."""

    sql: str
    origin: QueryOrigin
    source: str

    def __str__(self) -> str:
        return self.source if self.origin is QueryOrigin.LOADED else self.sql


class QueryResolver:
    """Turns directive text into SQL, loading ``<prefix><name>`` references through a query loader."""

    DEFAULT_PREFIX = "file:"
    DEFAULT_EXTENSION = ".sql"

    def __init__(self, loader: Optional[QueryLoader], prefix: str = DEFAULT_PREFIX,
                 extension: str = DEFAULT_EXTENSION):
        """Construct a query resolver.

        :param loader: the loader consulted for external references, may be None when none are used
        :param prefix: the marker identifying external references
        :param extension: the extension appended to reference names lacking it
        """
        self.logger = logging.getLogger(__name__)
        self._loader = loader
        self.prefix = prefix
        self.extension = extension

    def reference_name(self, text: str) -> Optional[str]:
        """Return the name a directive's text refers to, None if the text is literal SQL."""
        if not text.startswith(self.prefix):
            return None
        name = text[len(self.prefix):]
        if not name.endswith(self.extension):
            name += self.extension
        return name

    def resolve(self, text: str, field_name: str) -> ResolvedQuery:
        """Resolve directive text to SQL.

        :param text: literal SQL or an external reference
        :param field_name: the name of the binding, used in error messages
        :returns: the resolved query
        :raises: QueryLoadError
        """
        name = self.reference_name(text)
        if name is None:
            if not text.strip():
                raise QueryLoadError(f"{field_name}: directive has no SQL")
            return ResolvedQuery(text, QueryOrigin.LITERAL, text)
        if self._loader is None:
            raise QueryLoadError(f"{field_name}: failed to load {text}, no query loader was given")
        try:
            sql = self._loader.get(name)
        except Exception as x:
            raise QueryLoadError(f"{field_name}: failed to load {text}: {x}") from x
        if not sql or not sql.strip():
            raise QueryLoadError(f"{field_name}: {text} is empty")
        self.logger.debug(f"Loaded {name} for {field_name}")
        return ResolvedQuery(sql, QueryOrigin.LOADED, text)
