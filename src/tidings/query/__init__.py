"""Query language for filtering articles.

Query examples:
    unread feed:bbc            - unread articles of feeds matching "bbc"
    title:"storm warning"      - phrase match, case-insensitive
    title:/(?i)breaking|urgent/ - regular expression search
    ~read                      - negation is per term
    tag:#work,#later           - tagged with any of the listed tags
    #work,#later               - same as above
    newer:"1 week ago"         - published after the captured instant
    syncedafter:"yesterday"    - synced after the captured instant
    today                      - published during the local calendar day
    lastsync                   - retrieved by the most recent sync
    storm                      - bare words search all text fields
    sort:"feed <date"          - sort clause, not a predicate

Terms are AND-ed; an empty query matches every article.
"""

from .evaluator import evaluate, filter_articles
from .parser import parse_query
from .sort import SortDirection, SortKey, SortSpec, compare, parse_sort, sort_articles
from .terms import Query, QueryTerm

__all__ = [
    "parse_query",
    "parse_sort",
    "evaluate",
    "filter_articles",
    "compare",
    "sort_articles",
    "Query",
    "QueryTerm",
    "SortSpec",
    "SortKey",
    "SortDirection",
]
