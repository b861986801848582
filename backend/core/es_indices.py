"""Elasticsearch index mappings for the watchlist and matches indices."""

WATCHLIST_INDEX = "watchlist"
MATCHES_INDEX = "matches"

WATCHLIST_MAPPING = {
    "mappings": {
        "properties": {
            "id": {"type": "keyword"},
            "query": {
                "type": "text",
                "fields": {"keyword": {"type": "keyword", "ignore_above": 512}},
            },
            "created_at": {"type": "date"},
            "active": {"type": "boolean"},
        }
    },
}

MATCHES_MAPPING = {
    "mappings": {
        "properties": {
            "id": {"type": "keyword"},
            "watchlist_id": {"type": "keyword"},
            "market_ticker": {"type": "keyword"},
            "event_ticker": {"type": "keyword"},
            "title": {
                "type": "text",
                "fields": {"keyword": {"type": "keyword", "ignore_above": 512}},
            },
            "subtitle": {"type": "text"},
            "category": {"type": "keyword"},
            "yes_bid": {"type": "integer"},
            "yes_ask": {"type": "integer"},
            "no_bid": {"type": "integer"},
            "no_ask": {"type": "integer"},
            "volume": {"type": "long"},
            "matched_at": {"type": "date"},
            "seen": {"type": "boolean"},
        }
    },
}

ALL_INDICES = {
    WATCHLIST_INDEX: WATCHLIST_MAPPING,
    MATCHES_INDEX: MATCHES_MAPPING,
}
