"""Decision search.

Keyword search runs against the decision store; hybrid dense + BM25
search runs against the optional Qdrant semantic index.
"""

from src.search.decision_search import MODE_HYBRID, MODE_KEYWORD, DecisionSearch
from src.search.semantic_index import SemanticIndex, relative_score_fusion

__all__ = [
    "MODE_HYBRID",
    "MODE_KEYWORD",
    "DecisionSearch",
    "SemanticIndex",
    "relative_score_fusion",
]
