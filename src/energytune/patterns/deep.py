"""
Deep pattern discovery with TF-IDF and agglomerative clustering.

Pipeline:
1. Stratified sampling by date when there are too many mentions
2. Person-name detection over all mentions
3. Context-preserving tokenization
4. TF-IDF vectors (sublinear tf, smoothed idf, L2 normalized)
5. Cosine similarity matrix
6. Average-linkage clustering with an adaptive threshold
7. Labels from concept scoring, sub-patterns from leading bigrams
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from ..config import get_settings
from ..models import MainPattern, Metric, SubPattern
from .cooperative import CooperativeTask, chunked
from .text import (
    RELATIONSHIP_WORDS,
    VERB_STOP_WORDS,
    Mention,
    content_words,
    dates_newest_first,
    detect_person_names,
    distinct_texts,
    format_label,
    generate_recommendation,
    mean_level,
    ngrams,
    select_emoji,
    tokenize,
)


logger = logging.getLogger(__name__)

Vector = Dict[str, float]

VERB_WEIGHT = 0.3
SMALL_SET_THRESHOLD = 0.10
DEFAULT_THRESHOLD = 0.12
SMALL_SET_SIZE = 20
THRESHOLD_DECAY = 0.8
MIN_THRESHOLD = 0.05
FAILURES_BEFORE_DECAY = 2
MAX_CONSECUTIVE_FAILURES = 5
MAX_CLUSTERS = 12
ROW_CHUNK_SIZE = 10
TOKENIZE_CHUNK_SIZE = 20


@dataclass
class ClusterBounds:
    """Stopping rules for agglomerative clustering of ``n`` items."""
    max_clusters: int
    min_clusters: int
    max_iterations: int
    initial_threshold: float

    @classmethod
    def for_size(cls, n: int) -> "ClusterBounds":
        return cls(
            max_clusters=min(MAX_CLUSTERS, max(3, n // 4)),
            min_clusters=max(1, n // 25),
            max_iterations=n,
            initial_threshold=SMALL_SET_THRESHOLD if n < SMALL_SET_SIZE else DEFAULT_THRESHOLD,
        )


# ============================================================================
# Sampling
# ============================================================================

def stratified_sample(mentions: List[Mention], max_count: int) -> List[Mention]:
    """Evenly spaced mentions across the date range, at most ``max_count``."""
    if len(mentions) <= max_count:
        return list(mentions)
    ordered = sorted(mentions, key=lambda m: m.date)
    step = max(1, len(ordered) // max_count)
    return ordered[::step][:max_count]


# ============================================================================
# TF-IDF
# ============================================================================

def compute_tfidf(documents: List[List[str]]) -> List[Vector]:
    """
    Sparse TF-IDF vectors for tokenized documents.

    tf is sublinear (1 + log count), idf is smoothed as
    log((1 + N) / (1 + df)) + 1, and tokens that are common verbs are
    down-weighted. Each vector is L2 normalized.
    """
    n_docs = len(documents)
    doc_freq: Counter = Counter()
    for tokens in documents:
        doc_freq.update(set(tokens))

    idf = {
        term: math.log((1 + n_docs) / (1 + df)) + 1
        for term, df in doc_freq.items()
    }

    vectors: List[Vector] = []
    for tokens in documents:
        vector: Vector = {}
        for term, count in Counter(tokens).items():
            weight = (1 + math.log(count)) * idf[term]
            if term in VERB_STOP_WORDS:
                weight *= VERB_WEIGHT
            vector[term] = weight
        norm = math.sqrt(sum(w * w for w in vector.values()))
        if norm > 0:
            vector = {term: w / norm for term, w in vector.items()}
        vectors.append(vector)
    return vectors


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity of two sparse vectors."""
    if not a or not b:
        return 0.0
    if len(a) > len(b):
        a, b = b, a
    dot = sum(w * b.get(term, 0.0) for term, w in a.items())
    norm_a = math.sqrt(sum(w * w for w in a.values()))
    norm_b = math.sqrt(sum(w * w for w in b.values()))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


async def similarity_matrix(
    vectors: List[Vector],
    task: CooperativeTask,
) -> List[List[float]]:
    """Symmetric pairwise similarity matrix, built row by row."""
    n = len(vectors)
    matrix = [[0.0] * n for _ in range(n)]
    for i in range(n):
        if i % ROW_CHUNK_SIZE == 0:
            await task.checkpoint()
            task.report("computing_similarity", 0.3 + 0.2 * i / n)
        matrix[i][i] = 1.0
        for j in range(i + 1, n):
            sim = cosine_similarity(vectors[i], vectors[j])
            matrix[i][j] = sim
            matrix[j][i] = sim
    return matrix


# ============================================================================
# Clustering
# ============================================================================

async def agglomerative_clustering(
    matrix: List[List[float]],
    task: CooperativeTask,
    bounds: Optional[ClusterBounds] = None,
) -> List[List[int]]:
    """
    Average-linkage agglomerative clustering.

    Starts from singletons and repeatedly merges the most similar pair while
    that similarity reaches the threshold. After two consecutive rounds
    without a merge the threshold decays by 0.8, down to 0.05; five
    consecutive failures end clustering. Merging also stops once the
    cluster count reaches ``max_clusters`` or ``min_clusters``, or after
    ``max_iterations`` rounds.

    Returns:
        Clusters as lists of item indices, largest first
    """
    n = len(matrix)
    bounds = bounds or ClusterBounds.for_size(n)
    clusters: Dict[int, List[int]] = {i: [i] for i in range(n)}
    # Linkage between live clusters, updated with the Lance-Williams rule
    linkage: Dict[int, Dict[int, float]] = {
        i: {j: matrix[i][j] for j in range(n) if j != i} for i in range(n)
    }

    threshold = bounds.initial_threshold
    failures = 0
    iterations = 0

    while (
        len(clusters) > bounds.min_clusters
        and len(clusters) > bounds.max_clusters
        and iterations < bounds.max_iterations
    ):
        iterations += 1
        if iterations % 5 == 0:
            await task.checkpoint()
            task.report("clustering", 0.5 + 0.2 * iterations / bounds.max_iterations)

        best_pair = None
        best_sim = -1.0
        for a in sorted(clusters):
            for b, sim in linkage[a].items():
                if b > a and sim > best_sim:
                    best_sim = sim
                    best_pair = (a, b)

        if best_pair is None or best_sim < threshold:
            failures += 1
            if failures >= FAILURES_BEFORE_DECAY and threshold > MIN_THRESHOLD:
                threshold = max(MIN_THRESHOLD, threshold * THRESHOLD_DECAY)
                failures = 0
            elif failures >= MAX_CONSECUTIVE_FAILURES:
                logger.debug("Clustering stopped after %d rounds without a merge", failures)
                break
            continue

        failures = 0
        a, b = best_pair
        size_a, size_b = len(clusters[a]), len(clusters[b])
        clusters[a].extend(clusters.pop(b))
        linkage.pop(b)
        for c in clusters:
            if c == a:
                continue
            merged = (
                size_a * linkage[a].get(c, 0.0) + size_b * linkage[c].pop(b, 0.0)
            ) / (size_a + size_b)
            linkage[a][c] = merged
            linkage[c][a] = merged
        linkage[a].pop(b, None)

    logger.debug("Clustering finished with %d clusters after %d rounds", len(clusters), iterations)
    return sorted(
        (sorted(members) for members in clusters.values()),
        key=lambda members: (-len(members), members[0]),
    )


# ============================================================================
# Labels and sub-patterns
# ============================================================================

def find_representative_label(members: List[Mention], known_names: Set[str]) -> str:
    """
    Short, common concept that best names a cluster.

    Candidate concepts are scored across members: the last content word,
    the last two words, every bigram and the full text. Single words and
    pairs are preferred over longer phrases, concepts present in at least
    half the members get a bonus, and lone person names or relationship
    words are skipped unless they appear in at least 70% of members.
    """
    if not members:
        return "Pattern"
    if len(members) == 1:
        return format_label(members[0].text)

    scores: Dict[str, float] = {}
    for member in members:
        text = member.text.lower().strip()
        words = content_words(text)
        if words:
            scores[words[-1]] = scores.get(words[-1], 0) + 3
            if len(words) >= 2:
                last_two = " ".join(words[-2:])
                scores[last_two] = scores.get(last_two, 0) + 2.5
        for bigram in ngrams(words, 2):
            scores[bigram] = scores.get(bigram, 0) + 1
        scores[text] = scores.get(text, 0) + 0.5

    best_concept = None
    best_score = 0.0
    size = len(members)
    for concept, count in scores.items():
        word_count = len(concept.split(" "))
        if word_count == 1 and (concept in known_names or concept in RELATIONSHIP_WORDS):
            if count / size < 0.7:
                continue

        if word_count == 1:
            score = count * 2.0
        elif word_count == 2:
            score = count * 1.5
        elif word_count == 3:
            score = count * 0.8
        else:
            score = count * 0.3
        if count >= size * 0.5:
            score *= 1.3

        if score > best_score:
            best_score = score
            best_concept = concept

    return format_label(best_concept or members[0].text)


def sub_pattern_key(text: str) -> str:
    """Grouping key for a mention: its first bigram, else first word, else the text."""
    words = content_words(text)
    bigrams = ngrams(words, 2)
    if bigrams:
        return bigrams[0]
    if words:
        return words[0]
    return text


def extract_sub_patterns(
    members: List[Mention],
    metric: Metric,
    limit: int,
) -> List[SubPattern]:
    groups: Dict[str, List[Mention]] = {}
    for member in members:
        groups.setdefault(sub_pattern_key(member.text), []).append(member)

    sub_patterns = [
        SubPattern(
            id=key.replace(" ", "_"),
            label=format_label(key),
            count=len(group),
            avg_impact=mean_level(group),
            examples=distinct_texts(group, 3),
            dates=dates_newest_first(group, 10),
            recommendation=generate_recommendation(key, group, metric),
        )
        for key, group in groups.items()
    ]
    sub_patterns.sort(key=lambda s: s.count, reverse=True)
    return sub_patterns[:limit]


# ============================================================================
# Entry point
# ============================================================================

async def cluster_by_tfidf(
    mentions: List[Mention],
    metric: Metric,
    task: Optional[CooperativeTask] = None,
    max_sources: Optional[int] = None,
    max_sub_patterns: Optional[int] = None,
) -> List[MainPattern]:
    """
    Cluster mentions semantically with TF-IDF and average linkage.

    Percentages are shares of the clustered (possibly sampled) mentions.
    """
    settings = get_settings()
    task = task or CooperativeTask()
    max_sources = max_sources or settings.deep_max_sources
    max_sub_patterns = max_sub_patterns or settings.max_sub_patterns
    if not mentions:
        return []

    sample = stratified_sample(mentions, max_sources)
    if len(sample) < len(mentions):
        logger.info("Sampled %d of %d mentions for deep analysis", len(sample), len(mentions))

    known_names = detect_person_names(mentions)
    task.report("tokenizing", 0.05)

    documents: List[List[str]] = []
    for start, chunk in chunked(sample, TOKENIZE_CHUNK_SIZE):
        await task.checkpoint()
        documents.extend(tokenize(m.text, known_names) for m in chunk)
        task.report("tokenizing", 0.05 + 0.15 * (start + len(chunk)) / len(sample))

    await task.checkpoint()
    vectors = compute_tfidf(documents)
    task.report("computing_tfidf", 0.3)

    matrix = await similarity_matrix(vectors, task)
    clusters = await agglomerative_clustering(matrix, task)

    total = len(sample)
    patterns: List[MainPattern] = []
    for start, chunk in chunked(clusters, settings.category_chunk_size):
        await task.checkpoint()
        for indices in chunk:
            members = [sample[i] for i in indices]
            label = find_representative_label(members, known_names)
            patterns.append(MainPattern(
                id=f"tfidf_{len(patterns)}",
                label=label,
                emoji=select_emoji(label),
                total_count=len(members),
                percentage=round(len(members) / total * 100),
                avg_impact=mean_level(members),
                sub_patterns=extract_sub_patterns(members, metric, max_sub_patterns),
                examples=distinct_texts(members, 5),
                dates=dates_newest_first(members, 10),
            ))
        task.report("building_patterns", 0.7 + 0.3 * (start + len(chunk)) / len(clusters))

    return patterns
