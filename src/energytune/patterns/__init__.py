"""
Pattern discovery over free-text source mentions.

Fast mode groups phrases by word overlap; deep mode clusters mentions with
TF-IDF and average linkage.
"""

from .cooperative import CooperativeTask
from .deep import (
    ClusterBounds,
    agglomerative_clustering,
    cluster_by_tfidf,
    compute_tfidf,
    cosine_similarity,
    find_representative_label,
    stratified_sample,
)
from .engine import (
    HierarchicalPatternEngine,
    explain_algorithm,
    filter_patterns,
    get_pattern_engine,
)
from .fast import cluster_by_phrases, group_similar_phrases
from .text import Mention, extract_phrases, phrase_similarity, tokenize

__all__ = [
    "CooperativeTask",
    # Deep mode
    "ClusterBounds",
    "agglomerative_clustering",
    "cluster_by_tfidf",
    "compute_tfidf",
    "cosine_similarity",
    "find_representative_label",
    "stratified_sample",
    # Engine
    "HierarchicalPatternEngine",
    "explain_algorithm",
    "filter_patterns",
    "get_pattern_engine",
    # Fast mode
    "cluster_by_phrases",
    "group_similar_phrases",
    # Text
    "Mention",
    "extract_phrases",
    "phrase_similarity",
    "tokenize",
]
