import pytest

from smart_search.services.ai.fallback import FallbackSynthesizer
from smart_search.services.ai.types import FALLBACK_PROVIDER_NAME
from smart_search.tests.fakes import make_match


@pytest.fixture
def synthesizer() -> FallbackSynthesizer:
    return FallbackSynthesizer()


def test_no_matches_gives_suggestions(synthesizer: FallbackSynthesizer) -> None:
    result = synthesizer.synthesize("quantum knitting patterns", [])

    assert result.metadata.confidence == 0.1
    assert result.metadata.source_count == 0
    assert result.metadata.avg_similarity == 0.0
    assert result.metadata.provider == FALLBACK_PROVIDER_NAME
    assert result.content.startswith(
        "I couldn't find any relevant information in our knowledge base for "
        '"quantum knitting patterns".'
    )
    assert "**Suggestions to get better results:**" in result.content
    assert "1. Try using different keywords or synonyms" in result.content
    assert "4. Check for spelling errors" in result.content
    assert "5." not in result.content
    assert result.content.endswith(
        "*No matching entries found in the knowledge base. "
        "Consider adding more content or refining your search.*"
    )


def test_suggestions_depend_on_query(synthesizer: FallbackSynthesizer) -> None:
    question = synthesizer.search_suggestions("what is the fastest cache?")
    assert question[4:] == ["Try rephrasing as a declarative statement"]

    short = synthesizer.search_suggestions("caching")
    assert short[4:] == ["Provide more context in your question"]

    best = synthesizer.search_suggestions("best approach for caching layers")
    assert best[4:] == ["Try searching for specific techniques or methods"]

    every_rule = synthesizer.search_suggestions("how best?")
    assert every_rule == [
        "Try using different keywords or synonyms",
        "Make your question more specific",
        "Break complex questions into smaller parts",
        "Check for spelling errors",
        "Try rephrasing as a declarative statement",
    ]


def test_top_match_is_shown_verbatim_first(synthesizer: FallbackSynthesizer) -> None:
    matches = [
        make_match(0.95, "How to cache?", "Use an LRU cache in front of the database."),
        make_match(0.82, "Cache invalidation?", "Expire keys on writes."),
        make_match(0.6, "Redis setup?", "Run Redis with persistence enabled."),
    ]

    result = synthesizer.synthesize("caching", matches)

    assert result.content.startswith(
        'Based on your question about "caching", I found 3 relevant entries '
        "in our knowledge base.\n\n"
        "**Most Relevant Answer** (95.0% match):\n"
        "Use an LRU cache in front of the database.\n\n"
    )
    assert "**Additional Information:**" in result.content
    assert "**Source 1**" not in result.content
    assert "**Source 2** (82.0% match):\n*Question:* Cache invalidation?\n" in result.content
    assert "**Source 3** (60.0% match):" in result.content
    assert result.content.endswith(
        "*This response is compiled from 3 related entries in our knowledge base. "
        "We found a highly relevant match (95.0% similarity).*"
    )
    assert result.metadata.source_count == 3
    assert result.metadata.avg_similarity == pytest.approx((0.95 + 0.82 + 0.6) / 3)
    assert result.metadata.confidence == pytest.approx(0.708, abs=1e-6)


def test_single_weak_match_lists_it_as_source(synthesizer: FallbackSynthesizer) -> None:
    result = synthesizer.synthesize("deploys", [make_match(0.72, "Deploy?", "Use blue green.")])

    assert "I found 1 relevant entry in our knowledge base." in result.content
    assert "**Most Relevant Answer**" not in result.content
    assert "**Source 1** (72.0% match):" in result.content
    assert "compiled from 1 related entry" in result.content
    assert "We found good matches with 72.0% similarity.*" in result.content


def test_low_similarity_footer_asks_for_refinement(synthesizer: FallbackSynthesizer) -> None:
    result = synthesizer.synthesize("vague", [make_match(0.42)])

    assert result.content.endswith(
        "The closest matches have 42.0% similarity. "
        "Consider refining your question for better results.*"
    )


def test_key_insights_come_from_lists_and_salient_sentences(
    synthesizer: FallbackSynthesizer,
) -> None:
    response = (
        "1) Memoize expensive components\n"
        "2) Virtualize long lists of rows\n"
        "- Split bundles with lazy loading\n"
        "* ok"
    )
    sentences = (
        "You should always measure before you change anything! "
        "Profiling tools are bundled with the browser today."
    )

    insights = synthesizer.extract_key_insights(
        [make_match(0.9, response=response), make_match(0.85, response=sentences)]
    )

    assert insights == [
        "Memoize expensive components",
        "Virtualize long lists of rows",
        "Split bundles with lazy loading",
        "You should always measure before you change anything",
    ]


def test_key_insights_are_deduplicated_and_capped(synthesizer: FallbackSynthesizer) -> None:
    listing = "\n".join(f"{n}. Important step number {n} here" for n in range(1, 4))
    bullets = "\n".join(f"- Another essential bullet {n}" for n in range(1, 4))
    matches = [
        make_match(0.9, response=f"{listing}\n{bullets}"),
        make_match(0.88, response=listing),
    ]

    insights = synthesizer.extract_key_insights(matches)

    assert len(insights) == 5
    assert len({insight.lower()[:50] for insight in insights}) == 5


def test_insights_section_is_rendered(synthesizer: FallbackSynthesizer) -> None:
    matches = [make_match(0.85, response="1. Always use parameterized queries")]

    result = synthesizer.synthesize("sql injection", matches)

    assert "**Key Insights:**\n1. Always use parameterized queries\n\n" in result.content


@pytest.mark.parametrize(
    "similarities, expected",
    [
        ([0.0], 0.1),
        ([0.3], 0.14),
        ([1.0] * 8, 0.8),
        ([0.5], 0.52),
    ],
)
def test_confidence_formula_and_bounds(
    synthesizer: FallbackSynthesizer, similarities, expected
) -> None:
    matches = [make_match(similarity) for similarity in similarities]
    assert synthesizer.calculate_confidence(matches) == pytest.approx(expected)


def test_confidence_never_leaves_bounds(synthesizer: FallbackSynthesizer) -> None:
    for similarity in (-1.0, 0.0, 0.49, 0.5, 0.99, 1.0):
        confidence = synthesizer.calculate_confidence([make_match(similarity)] * 5)
        assert 0.1 <= confidence <= 0.85


def test_same_input_gives_same_content(synthesizer: FallbackSynthesizer) -> None:
    matches = [make_match(0.9, response="Ensure you validate input."), make_match(0.75)]

    first = synthesizer.synthesize("validation", matches)
    second = synthesizer.synthesize("validation", matches)

    assert first.content == second.content
    assert first.metadata.confidence == second.metadata.confidence


def test_format_matches(synthesizer: FallbackSynthesizer) -> None:
    assert synthesizer.format_matches([]) == "No similar documents found."

    formatted = synthesizer.format_matches(
        [make_match(0.91, "What is Redis?", "An in-memory store.")]
    )

    assert formatted == (
        "Found 1 similar document:\n\n"
        "**1. What is Redis?** (91.0% match)\n"
        "An in-memory store.\n"
        "*Added: 2024-01-01*\n\n"
    )
