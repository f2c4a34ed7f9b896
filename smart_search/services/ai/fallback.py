"""Deterministic answers built from search results when no AI provider can be used."""

import re
import time
from typing import List, Sequence

from smart_search.services.ai.types import FallbackMetadata, FallbackResult
from smart_search.services.vector_db.types import ScoredMatch

MAX_SOURCES = 5
MAX_INSIGHTS = 5
MAX_LIST_ITEMS = 3
MIN_ITEM_LENGTH = 10
MIN_SENTENCE_LENGTH = 20
HIGH_SIMILARITY = 0.8

NUMBERED_ITEM_PATTERN = re.compile(r"^\d+[\.)]\s+(.+)$", re.MULTILINE)
BULLET_ITEM_PATTERN = re.compile(r"^[\-\*•]\s+(.+)$", re.MULTILINE)
SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")

KEY_PHRASES = (
    "best practice",
    "important",
    "key",
    "essential",
    "critical",
    "should",
    "must",
    "recommended",
    "avoid",
    "ensure",
    "optimize",
    "improve",
    "effective",
    "efficient",
    "secure",
)

BASE_SUGGESTIONS = (
    "Try using different keywords or synonyms",
    "Make your question more specific",
    "Break complex questions into smaller parts",
    "Check for spelling errors",
)
MAX_SUGGESTIONS = 5


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def _percent(similarity: float) -> str:
    return f"{similarity * 100:.1f}"


class FallbackSynthesizer:
    """
    Turns ranked matches into a structured, source-attributed answer.

    The output depends only on the query and the matches, so the same
    inputs always produce the same text and confidence.
    """

    def synthesize(self, query: str, matches: Sequence[ScoredMatch]) -> FallbackResult:
        """
        Build a fallback answer.

        :param query: User query
        :param matches: Ranked matches, best first
        :return: FallbackResult
        """
        start_time = time.time()

        if not matches:
            return FallbackResult(
                content=self._no_results_content(query),
                metadata=FallbackMetadata(
                    source_count=0,
                    avg_similarity=0.0,
                    response_time=int((time.time() - start_time) * 1000),
                    confidence=0.1,
                ),
            )

        content = self._structured_content(query, matches)
        avg_similarity = self.average_similarity(matches)

        return FallbackResult(
            content=content,
            metadata=FallbackMetadata(
                source_count=len(matches),
                avg_similarity=avg_similarity,
                response_time=int((time.time() - start_time) * 1000),
                confidence=self.calculate_confidence(matches),
            ),
        )

    def _structured_content(self, query: str, matches: Sequence[ScoredMatch]) -> str:
        top_matches = list(matches[:MAX_SOURCES])
        best_match = top_matches[0]
        best_similarity = _percent(best_match.similarity)
        best_shown = best_match.similarity >= HIGH_SIMILARITY
        entries = _plural(len(top_matches), "entry", "entries")

        parts = [
            f'Based on your question about "{query}", I found {len(top_matches)} '
            f"relevant {entries} in our knowledge base.\n\n"
        ]

        if best_shown:
            parts.append(f"**Most Relevant Answer** ({best_similarity}% match):\n")
            parts.append(f"{best_match.record.response}\n\n")

        insights = self.extract_key_insights(top_matches)
        if insights:
            parts.append("**Key Insights:**\n")
            parts.extend(
                f"{index}. {insight}\n" for index, insight in enumerate(insights, start=1)
            )
            parts.append("\n")

        if len(top_matches) > 1 or not best_shown:
            parts.append("**Additional Information:**\n\n")
            for index, match in enumerate(top_matches, start=1):
                if index == 1 and best_shown:
                    continue
                parts.append(f"**Source {index}** ({_percent(match.similarity)}% match):\n")
                parts.append(f"*Question:* {match.record.prompt}\n")
                parts.append(f"*Answer:* {match.record.response}\n\n")

        parts.append("---\n")
        parts.append(
            f"*This response is compiled from {len(top_matches)} related {entries} "
            "in our knowledge base. "
        )
        if best_match.similarity >= 0.9:
            parts.append(f"We found a highly relevant match ({best_similarity}% similarity).*")
        elif best_match.similarity >= 0.7:
            parts.append(f"We found good matches with {best_similarity}% similarity.*")
        else:
            parts.append(
                f"The closest matches have {best_similarity}% similarity. "
                "Consider refining your question for better results.*"
            )

        return "".join(parts)

    def extract_key_insights(self, matches: Sequence[ScoredMatch]) -> List[str]:
        """
        Pull short insights out of the matched responses.

        List items come first, then the leading sentences that contain
        a key phrase. Insights are deduplicated by their lower-cased prefix.

        :param matches: Matches to read, in rank order
        :return: At most five insights
        """
        insights: List[str] = []
        seen = set()

        def add(candidate: str) -> None:
            key = candidate.lower()[:50]
            if key not in seen:
                insights.append(candidate)
                seen.add(key)

        for match in matches:
            response = match.record.response

            for pattern in (NUMBERED_ITEM_PATTERN, BULLET_ITEM_PATTERN):
                for item in pattern.findall(response)[:MAX_LIST_ITEMS]:
                    cleaned = item.strip()
                    if len(cleaned) > MIN_ITEM_LENGTH:
                        add(cleaned)

            sentences = [
                sentence
                for sentence in SENTENCE_SPLIT_PATTERN.split(response)
                if len(sentence.strip()) > MIN_SENTENCE_LENGTH
            ]
            for sentence in sentences[:2]:
                cleaned = sentence.strip()
                if self.is_key_insight(cleaned):
                    add(cleaned)

            if len(insights) >= MAX_INSIGHTS:
                break

        return insights[:MAX_INSIGHTS]

    @staticmethod
    def is_key_insight(sentence: str) -> bool:
        lowered = sentence.lower()
        return any(phrase in lowered for phrase in KEY_PHRASES)

    @staticmethod
    def average_similarity(matches: Sequence[ScoredMatch]) -> float:
        if not matches:
            return 0.0
        return sum(match.similarity for match in matches) / len(matches)

    def calculate_confidence(self, matches: Sequence[ScoredMatch]) -> float:
        """
        Confidence of a fallback answer, always within [0.1, 0.85].

        :param matches: Matches the answer was built from
        """
        if not matches:
            return 0.1

        avg_similarity = self.average_similarity(matches)
        top_similarity = max(match.similarity for match in matches)
        similarity_factor = (avg_similarity + top_similarity) / 2
        source_factor = min(len(matches), MAX_SOURCES) / MAX_SOURCES
        quality_penalty = 0.3 if top_similarity < 0.5 else 0.0

        confidence = 0.3 + similarity_factor * 0.4 + source_factor * 0.1 - quality_penalty
        return max(0.1, min(0.85, confidence))

    def _no_results_content(self, query: str) -> str:
        suggestions = self.search_suggestions(query)
        lines = [
            f'I couldn\'t find any relevant information in our knowledge base for "{query}".',
            "",
            "**Suggestions to get better results:**",
        ]
        lines.extend(
            f"{index}. {suggestion}" for index, suggestion in enumerate(suggestions, start=1)
        )
        lines.append("")
        lines.append(
            "*No matching entries found in the knowledge base. "
            "Consider adding more content or refining your search.*"
        )
        return "\n".join(lines)

    @staticmethod
    def search_suggestions(query: str) -> List[str]:
        suggestions = list(BASE_SUGGESTIONS)
        lowered = query.lower()

        if "how" in lowered or "what" in lowered:
            suggestions.append("Try rephrasing as a declarative statement")
        if len(lowered) < 10:
            suggestions.append("Provide more context in your question")
        if "best" in lowered or "better" in lowered:
            suggestions.append("Try searching for specific techniques or methods")

        return suggestions[:MAX_SUGGESTIONS]

    def format_matches(self, matches: Sequence[ScoredMatch]) -> str:
        """
        Render matches as a plain listing without any synthesis.

        :param matches: Ranked matches
        :return: Markdown listing
        """
        if not matches:
            return "No similar documents found."

        documents = _plural(len(matches), "document", "documents")
        parts = [f"Found {len(matches)} similar {documents}:\n\n"]
        for index, match in enumerate(matches, start=1):
            parts.append(
                f"**{index}. {match.record.prompt}** ({_percent(match.similarity)}% match)\n"
            )
            parts.append(f"{match.record.response}\n")
            parts.append(f"*Added: {match.record.created_at.date().isoformat()}*\n\n")
        return "".join(parts)
