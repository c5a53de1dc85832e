"""Full-text search over stored messages."""
from .engine import SearchEngine, build_match_expression
from .schemas import DateRange, SearchFilters, SearchHit, SearchOptions, SearchOutcome, SearchQuery
from .snippet import generate_snippet, highlight_keywords

__all__ = [
    "DateRange",
    "SearchEngine",
    "SearchFilters",
    "SearchHit",
    "SearchOptions",
    "SearchOutcome",
    "SearchQuery",
    "build_match_expression",
    "generate_snippet",
    "highlight_keywords",
]
