"""Brute-force vector search over stored records."""

from typing import Iterable, List, Sequence

from loguru import logger

from smart_search.services.errors import DimensionMismatchError
from smart_search.services.vector_db.similarity import cosine_similarity
from smart_search.services.vector_db.types import Record, ScoredMatch

DEFAULT_THRESHOLD = 0.7
DEFAULT_LIMIT = 5


class VectorSearchEngine:
    """Rank candidate records by cosine similarity to a query vector."""

    def search(
        self,
        query_vector: Sequence[float],
        candidates: Iterable[Record],
        threshold: float = DEFAULT_THRESHOLD,
        limit: int = DEFAULT_LIMIT,
    ) -> List[ScoredMatch]:
        """
        Filter, rank and truncate candidates against a query vector.

        Candidates without an embedding, or whose embedding has a different
        dimension than the query, are skipped.

        :param query_vector: Embedding of the query
        :param candidates: Records to score
        :param threshold: Minimum similarity for a candidate to be kept
        :param limit: Maximum number of matches to return
        :returns: Matches sorted by descending similarity
        """
        if limit <= 0:
            return []

        matches: List[ScoredMatch] = []
        skipped = 0
        for record in candidates:
            if not record.has_embedding:
                continue
            try:
                similarity = cosine_similarity(query_vector, record.embedding)
            except DimensionMismatchError as e:
                skipped += 1
                logger.warning(f"Skipping record {record.id}: {e}")
                continue
            if similarity >= threshold:
                matches.append(ScoredMatch(record=record, similarity=similarity))

        # sorted() is stable, equal scores keep candidate order
        matches = sorted(matches, key=lambda match: match.similarity, reverse=True)

        logger.debug(
            f"Vector search kept {len(matches)} matches above {threshold} "
            f"(skipped {skipped} mismatched), returning at most {limit}"
        )
        return matches[:limit]
