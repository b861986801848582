"""Deterministic document IDs for match deduplication."""


def generate_match_doc_id(watchlist_id: int | str, market_ticker: str) -> str:
    """Generate deterministic doc_id: '{watchlist_id}|{market_ticker}'.

    The same (watchlist item, market) pair always maps to the same doc_id,
    so a re-match overwrites the existing document instead of adding one.
    """
    return f"{watchlist_id}|{market_ticker}"
