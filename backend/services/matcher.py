"""Semantic matcher — asks a language model which markets fit which watchlist queries."""

import json
import logging
import re
from typing import Protocol

from core.errors import RemoteServiceError
from models.market import MarketSummary, MatchResult
from models.watchlist import WatchlistItem

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


class CompletionClient(Protocol):
    async def complete(self, prompt: str) -> str: ...


def format_market(index: int, market: MarketSummary) -> str:
    line = f"[{index}] {market.title}"
    if market.subtitle:
        line += f" — {market.subtitle}"
    if market.category:
        line += f" ({market.category})"
    return line


def build_prompt(queries: list[WatchlistItem], markets: list[MarketSummary]) -> str:
    query_list = "\n".join(f'Q{i}: "{q.query}"' for i, q in enumerate(queries))
    market_list = "\n".join(format_market(i, m) for i, m in enumerate(markets))

    return f"""You are a market matching engine. Given watchlist queries and a list of prediction markets, identify which markets are directly relevant to each query.

QUERIES:
{query_list}

MARKETS:
{market_list}

MATCHING RULES:
- A market matches a query only if it is about the same topic, entity or event: the same country, organization, person, asset or specific event the query is about.
- Sharing a keyword is NOT enough. A query about a central bank does not match a market that merely mentions "rates" in another context.
- If the relevance is ambiguous or weak, leave the market out. Prefer missing a borderline market over including an unrelated one.

Respond ONLY in this JSON format, no other text:
{{"matches": [{{"q": 0, "markets": [1, 5, 12]}}, {{"q": 1, "markets": [3, 7]}}]}}

Use the Q numbers and market indices exactly as listed. If no markets match a query, omit it or use an empty array. Return ONLY valid JSON."""


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip())


def _valid_index(value, size: int) -> bool:
    # bool is an int subclass; true/false are never valid indices
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < size


def parse_response(
    text: str, queries: list[WatchlistItem], markets: list[MarketSummary]
) -> list[MatchResult]:
    """Resolve the model's index-based JSON back to (watchlist_id, market) pairs.

    Malformed output yields an empty list; out-of-range indices are dropped.
    """
    try:
        parsed = json.loads(_strip_fences(text))
    except (json.JSONDecodeError, TypeError):
        logger.warning("Failed to parse model response: %.300s", text)
        return []

    entries = parsed.get("matches") if isinstance(parsed, dict) else None
    if not isinstance(entries, list):
        logger.warning("Model response has no 'matches' list: %.300s", text)
        return []

    results: list[MatchResult] = []
    seen: set[tuple[int, int]] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        q_idx = entry.get("q")
        market_idxs = entry.get("markets")
        if not _valid_index(q_idx, len(queries)) or not isinstance(market_idxs, list):
            continue
        for m_idx in market_idxs:
            if not _valid_index(m_idx, len(markets)) or (q_idx, m_idx) in seen:
                continue
            seen.add((q_idx, m_idx))
            results.append(MatchResult(watchlist_id=queries[q_idx].id, market=markets[m_idx]))
    return results


class SemanticMatcher:
    def __init__(self, llm: CompletionClient):
        self.llm = llm

    async def match(
        self, queries: list[WatchlistItem], markets: list[MarketSummary]
    ) -> list[MatchResult]:
        """Match one batch of markets against all queries. Never raises on bad model output."""
        if not queries or not markets:
            return []

        prompt = build_prompt(queries, markets)
        try:
            text = await self.llm.complete(prompt)
        except RemoteServiceError as e:
            logger.error("Model call failed for batch of %d markets: %s", len(markets), e)
            return []

        results = parse_response(text, queries, markets)
        logger.info(
            "Matched %d pairs from %d queries x %d markets", len(results), len(queries), len(markets)
        )
        return results
