"""Full-text search over messages with optional filters."""

from typing import Any

from sqlalchemy import Engine, bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from chatmemo.db.schema import FTS_TABLE
from chatmemo.logging import get_logger, log_search_failed
from chatmemo.search.schemas import SearchHit, SearchOutcome, SearchQuery
from chatmemo.search.snippet import DEFAULT_HIGHLIGHT, generate_snippet
from chatmemo.tokenizer import Tokenizer, split_tokens

logger = get_logger("chatmemo.search")

BASE_SEARCH_SQL = f"""
SELECT
    m.id, m.content, m.thinking, m.created_at, m.sender,
    c.platform, c.title, c.id AS conversation_id
FROM {FTS_TABLE}
JOIN messages m ON m.rowid = {FTS_TABLE}.rowid
JOIN conversations c ON m.conversation_id = c.id
WHERE {FTS_TABLE} MATCH :match_query
"""


def build_match_expression(tokens: list[str]) -> str:
    """Build an FTS5 MATCH expression: quoted prefix terms joined with OR.

    OR keeps recall high: a message matching any token is a candidate.
    Double quotes inside a token are doubled so it stays one string literal.
    """
    terms = ['"{}"*'.format(token.replace('"', '""')) for token in tokens]
    return " OR ".join(terms)


class SearchEngine:
    """Runs keyword searches and turns matching rows into highlighted hits."""

    def __init__(
        self,
        engine: Engine,
        tokenizer: Tokenizer,
        snippet_length: int = 60,
        highlight: tuple[str, str] = DEFAULT_HIGHLIGHT,
    ) -> None:
        self.engine = engine
        self.tokenizer = tokenizer
        self.snippet_length = snippet_length
        self.highlight = highlight

    def build_statement(self, query: SearchQuery, match_expression: str) -> tuple[Any, dict[str, Any]]:
        """Compose the SQL text and bound parameters for a query.

        Every filter value is a bound parameter; platform values use an
        expanding parameter (one placeholder per value).
        """
        sql = BASE_SEARCH_SQL
        params: dict[str, Any] = {"match_query": match_expression}
        filters = query.filters

        if filters.platform:
            sql += " AND c.platform IN :platforms"
            params["platforms"] = sorted(filters.platform)

        if filters.date_range is not None:
            sql += " AND m.created_at BETWEEN :start AND :end"
            params["start"] = filters.date_range.start
            params["end"] = filters.date_range.end

        if filters.sender:
            sql += " AND m.sender = :sender"
            params["sender"] = filters.sender

        sql += " ORDER BY m.created_at DESC LIMIT :limit OFFSET :offset"
        params["limit"] = query.options.limit
        params["offset"] = query.options.offset

        statement = text(sql)
        if "platforms" in params:
            statement = statement.bindparams(bindparam("platforms", expanding=True))
        return statement, params

    def search(self, query: SearchQuery) -> SearchOutcome:
        """Search message content.

        Failures never raise: they are logged and reported through
        SearchOutcome.error with an empty result list.
        """
        try:
            tokens = split_tokens(self.tokenizer(query.keyword))
        except Exception as e:
            log_search_failed(logger, query.keyword, f"tokenizer failed: {e}")
            return SearchOutcome.failed(f"Tokenizer failed: {e}")

        if not tokens:
            return SearchOutcome()

        statement, params = self.build_statement(query, build_match_expression(tokens))

        try:
            with self.engine.connect() as conn:
                rows = conn.execute(statement, params).mappings().all()
        except SQLAlchemyError as e:
            log_search_failed(logger, query.keyword, str(e))
            return SearchOutcome.failed(str(e))

        results = [
            SearchHit(
                id=row["id"],
                conversation_id=row["conversation_id"],
                content=row["content"] or "",
                thinking=row["thinking"],
                created_at=row["created_at"],
                sender=row["sender"],
                platform=row["platform"],
                title=row["title"],
                snippet=generate_snippet(
                    row["content"] or "",
                    tokens,
                    max_length=self.snippet_length,
                    highlight=self.highlight,
                ),
            )
            for row in rows
        ]

        logger.info(
            "search_completed",
            keyword=query.keyword[:50],
            token_count=len(tokens),
            result_count=len(results),
        )
        return SearchOutcome(results=results)
