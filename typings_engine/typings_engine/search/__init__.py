"""Search index generation."""

from typings_engine.search.search_index import (
    SearchRecord,
    create_search_index,
    create_search_record,
    write_search_index,
)

__all__ = ["SearchRecord", "create_search_index", "create_search_record", "write_search_index"]
