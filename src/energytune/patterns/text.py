"""Text processing shared by the fast and deep pattern modes.

Covers:
- Splitting entries into individual source mentions
- Phrase extraction and word-overlap similarity
- Context-preserving tokenization for TF-IDF
- Person-name detection from context
- Labels, theme emoji and per-phrase recommendations
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from ..analysis.adapter import average_level
from ..models import DailyEntry, Metric


STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "can", "this", "that",
    "these", "those", "i", "you", "he", "she", "it", "we", "they",
    "what", "which", "who", "when", "where", "why", "how", "all", "each",
    "every", "both", "few", "more", "most", "other", "some", "such",
    "only", "own", "same", "so", "than", "too", "very", "just", "now",
    "feeling", "being", "having", "doing", "getting", "making",
})

# Common action verbs get down-weighted so they do not pull unrelated mentions together
VERB_STOP_WORDS = frozenset({
    "feeling", "seeing", "playing", "doing", "having", "getting",
    "making", "taking", "being", "going", "coming", "working",
    "thinking", "wanting", "needing", "trying", "looking", "watching",
    "talking", "saying", "knowing", "meeting", "visiting",
})

VERB_PREPOSITIONS = frozenset({"with", "to", "about", "for", "from", "at"})

RELATIONSHIP_WORDS = frozenset({
    "parents", "mom", "dad", "mother", "father",
    "friend", "friends", "family", "colleague",
    "partner", "spouse", "child", "children",
})

NEGATION = re.compile(r"\b(no|not|lack|without|missing)\b")
NON_WORD = re.compile(r"[^\w\s]")
MENTION_SEPARATORS = re.compile(r"[,;]")

PERSON_CONTEXT_PATTERNS = [
    re.compile(r"\b(?:with|seeing|meeting|calling|texting|visiting|hugging|kissing)\s+([a-z]+)\b"),
    re.compile(r"\b(?:talking|speaking)\s+(?:to|with)\s+([a-z]+)\b"),
    re.compile(r"\b([a-z]+)\s+(?:feeling|said|told|asked|invited|called|texted|complained|laughed)\b"),
    re.compile(r"\b(?:and|&)\s+([a-z]+)\s+(?:and|went|did|had|was|were|came|left)\b"),
    re.compile(r"\b(?:lunch|dinner|breakfast|coffee|walk|time)\s+with\s+([a-z]+)\b"),
    re.compile(r"\b(?:my|his|her|our)\s+([a-z]+)\b"),
]
MIN_NAME_OCCURRENCES = 3

THEME_EMOJI = [
    (re.compile(r"\b(work|project|deadline|meeting|client|task|job)\b"), "💼"),
    (re.compile(r"\b(sleep|rest|tired|exhausted|bed|night)\b"), "😴"),
    (re.compile(r"\b(bike|cycling|ride|exercise|workout|gym|run|walk)\b"), "🏃"),
    (re.compile(r"\b(sick|ill|pain|headache|doctor|health)\b"), "🏥"),
    (re.compile(r"\b(friend|family|social|people|conversation|party)\b"), "👥"),
    (re.compile(r"\b(series|documentary|movie|watching|tv|show)\b"), "🎬"),
    (re.compile(r"\b(cook|meal|food|eating|dining)\b"), "🍳"),
    (re.compile(r"\b(music|song|playlist|listening)\b"), "🎵"),
    (re.compile(r"\b(computer|laptop|software|technical|bug|error)\b"), "💻"),
    (re.compile(r"\b(money|financial|budget|bill|cost|expense)\b"), "💰"),
    (re.compile(r"\b(traffic|commute|drive|travel)\b"), "🚗"),
    (re.compile(r"\b(bureaucracy|government|paperwork|administration)\b"), "📋"),
    (re.compile(r"\b(alone|solitude|quiet|peace|privacy)\b"), "🧘"),
]
DEFAULT_EMOJI = "📊"

PHRASE_RECOMMENDATIONS = [
    (("deadline", "pressure"), "Schedule buffer time before deadlines"),
    (("bike", "cycling", "ride"), "Regular cycling boosts energy - keep a consistent schedule"),
    (("series", "watching"), "Balance screen time with other activities"),
    (("sleep", "tired"), "Prioritize a consistent sleep schedule"),
    (("bureaucracy", "government"), "Plan for delays with external processes"),
    (("alone", "solitude"), "Schedule regular alone time to recharge"),
]

DEFAULT_LEVEL = 5.0


@dataclass(frozen=True)
class Mention:
    """A single source mention with the context it was logged in."""
    text: str  # Lower-cased mention
    date: str
    level: float  # Mean level of the metric on that day


# ============================================================================
# Mentions
# ============================================================================

def split_mentions(text: Optional[str]) -> List[str]:
    """Split a free-text field into lower-cased mentions longer than 2 chars."""
    if not text or not text.strip():
        return []
    parts = (s.strip().lower() for s in MENTION_SEPARATORS.split(text))
    return [s for s in parts if len(s) > 2]


def mentions_for_entry(entry: DailyEntry, metric: Metric) -> List[Mention]:
    """All mentions of one metric in a single entry."""
    level = average_level(entry.levels_for(metric))
    level = level if level is not None else DEFAULT_LEVEL
    return [
        Mention(text=text, date=entry.date, level=level)
        for text in split_mentions(entry.sources_for(metric))
    ]


# ============================================================================
# Words and phrases
# ============================================================================

def content_words(text: str) -> List[str]:
    """Lower-cased words longer than 2 chars, punctuation and stop words removed."""
    words = NON_WORD.sub(" ", text.lower()).split()
    return [w for w in words if len(w) > 2 and w not in STOP_WORDS]


def ngrams(words: List[str], n: int) -> List[str]:
    """Space-joined word n-grams."""
    return [" ".join(words[i:i + n]) for i in range(len(words) - n + 1)]


def extract_phrases(text: str) -> List[str]:
    """
    Meaningful 2-3 word phrases of a mention, plus the whole mention
    when it is short enough to be a phrase itself.
    """
    words = content_words(text)
    phrases = [bg for bg in ngrams(words, 2) if len(bg) > 4]
    phrases += [tg for tg in ngrams(words, 3) if len(tg) > 6]
    if 4 < len(text) < 50:
        phrases.append(text.lower())
    # Ordered de-duplication
    return list(dict.fromkeys(phrases))


def phrase_similarity(phrase_a: str, phrase_b: str) -> float:
    """Jaccard similarity of the two phrases' word sets."""
    words_a = set(phrase_a.split())
    words_b = set(phrase_b.split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


# ============================================================================
# Person detection
# ============================================================================

def detect_person_names(mentions: Iterable[Mention]) -> Set[str]:
    """
    Names that appear in person contexts ("with X", "X said", ...) at least
    three times across all mentions.
    """
    counts: Counter = Counter()
    for mention in mentions:
        text = mention.text.lower()
        for pattern in PERSON_CONTEXT_PATTERNS:
            for match in pattern.finditer(text):
                name = match.group(1)
                if len(name) > 2 and name not in STOP_WORDS:
                    counts[name] += 1
    return {name for name, count in counts.items() if count >= MIN_NAME_OCCURRENCES}


def detect_persons(text: str, words: List[str], known_names: Set[str]) -> List[str]:
    """
    Person tokens for a mention.

    Known names count only in the first half of the text (the likely subject);
    relationship words count only among the first three content words.
    """
    persons = []
    first_half = text[: (len(text) + 1) // 2]
    for name in sorted(known_names):
        if name in first_half:
            persons.append(f"person_{name}")
    for word in words[:3]:
        if word in RELATIONSHIP_WORDS:
            persons.append(f"person_{word}")
    return persons


# ============================================================================
# Tokenization for TF-IDF
# ============================================================================

def extract_verb_object_pairs(words: List[str]) -> List[str]:
    """
    Verb-object tokens detected structurally:
    - word + preposition + object ("talking with marie")
    - gerund + object ("seeing parents")
    - past tense + object ("called friend")
    """
    pairs = []
    for i in range(len(words) - 1):
        word = words[i]
        nxt = i + 1
        if words[nxt] in VERB_PREPOSITIONS:
            obj = nxt + 1
            if obj < len(words):
                pairs.append(f"verb_{word}_{words[obj]}")
                if obj + 1 < len(words):
                    pairs.append(f"verb_{word}_{words[obj]}_{words[obj + 1]}")
        elif word.endswith("ing") and len(word) > 4:
            pairs.append(f"verb_{word}_{words[nxt]}")
            if nxt + 1 < len(words):
                pairs.append(f"verb_{word}_{words[nxt]}_{words[nxt + 1]}")
        elif word.endswith("ed") and len(word) > 3:
            pairs.append(f"verb_{word}_{words[nxt]}")
    return pairs


def char_ngrams(words: List[str], size: int = 4) -> List[str]:
    """Character n-grams of longer words, for partial matching ("alone" ~ "alone time")."""
    grams = []
    for word in words:
        if len(word) >= 5:
            grams.extend(f"char_{word[i:i + size]}" for i in range(len(word) - size + 1))
    return grams


def tokenize(text: str, known_names: Optional[Set[str]] = None) -> List[str]:
    """
    Weighted token list for TF-IDF. Repeated tokens weigh more:
    verb-object pairs, negation markers and bigrams twice; person markers,
    words, trigrams and character n-grams once.
    """
    lowered = text.lower()
    words = content_words(lowered)
    has_negation = bool(NEGATION.search(lowered))

    tokens: List[str] = []
    for pair in extract_verb_object_pairs(words):
        tokens += [pair, pair]
    tokens += detect_persons(lowered, words, known_names or set())
    if has_negation and words:
        tokens += ["negation_marker", "negation_marker"]
    for bigram in ngrams(words, 2):
        if len(bigram) > 4:
            tokens += [bigram, bigram]
            if has_negation:
                tokens += [f"neg_{bigram}", f"neg_{bigram}"]
    tokens += words
    tokens += [tg for tg in ngrams(words, 3) if len(tg) > 6]
    tokens += char_ngrams(words)
    return tokens


# ============================================================================
# Presentation
# ============================================================================

def format_label(text: str) -> str:
    """Title-case a phrase for display."""
    return " ".join(w[:1].upper() + w[1:] for w in text.replace("_", " ").split(" "))


def select_emoji(text: str) -> str:
    """Theme emoji for a phrase or cluster text."""
    lowered = text.lower()
    for pattern, emoji in THEME_EMOJI:
        if pattern.search(lowered):
            return emoji
    return DEFAULT_EMOJI


def generate_recommendation(
    phrase: str,
    mentions: List[Mention],
    metric: Metric = Metric.ENERGY,
) -> Optional[str]:
    """Suggestion for a sub-pattern, from keywords first and average level second."""
    lowered = phrase.lower()
    for keywords, recommendation in PHRASE_RECOMMENDATIONS:
        if any(k in lowered for k in keywords):
            return recommendation

    if not mentions:
        return None
    avg_level = sum(m.level for m in mentions) / len(mentions)
    if metric == Metric.ENERGY:
        if avg_level > 7:
            return "This consistently boosts your energy - do more of this"
        if avg_level < 4:
            return "Energy stays low on these days - look for what drains you"
    else:
        if avg_level > 7:
            return "Consider strategies to reduce this stressor"
        if avg_level < 4:
            return "This rarely causes much stress - keep an eye on it"
    return None


def mean_level(mentions: List[Mention]) -> float:
    """Average level rounded to one decimal."""
    if not mentions:
        return 0.0
    return round(sum(m.level for m in mentions) / len(mentions), 1)


def dates_newest_first(mentions: Iterable[Mention], limit: int) -> List[str]:
    """Distinct mention dates, newest first."""
    return sorted({m.date for m in mentions}, reverse=True)[:limit]


def distinct_texts(mentions: Iterable[Mention], limit: int) -> List[str]:
    """Distinct mention texts in first-seen order."""
    return list(dict.fromkeys(m.text for m in mentions))[:limit]
