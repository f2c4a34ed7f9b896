import math

import pytest

from smart_search.services.ai.embeddings import EmbeddingGateway
from smart_search.services.errors import EmbeddingError


def make_gateway(endpoint: str, dimensions: int = 3, timeout: int = 2000) -> EmbeddingGateway:
    return EmbeddingGateway(
        endpoint=endpoint,
        model="nomic-embed-text",
        dimensions=dimensions,
        timeout=timeout,
    )


@pytest.mark.asyncio
async def test_embed_posts_model_and_trimmed_prompt(fake_ollama) -> None:
    fake_ollama.embeddings["hello world"] = [0.5, 0.25, 0.125]
    gateway = make_gateway(fake_ollama.url)

    vector = await gateway.embed("  hello world \n")

    assert vector == [0.5, 0.25, 0.125]
    assert fake_ollama.requests[-1] == {
        "path": "/api/embeddings",
        "body": {"model": "nomic-embed-text", "prompt": "hello world"},
    }


@pytest.mark.asyncio
async def test_embed_raises_on_error_status(fake_ollama) -> None:
    fake_ollama.embedding_failures.append("broken")
    gateway = make_gateway(fake_ollama.url)

    with pytest.raises(EmbeddingError):
        await gateway.embed("broken")


@pytest.mark.asyncio
async def test_embed_rejects_invalid_payload(fake_ollama) -> None:
    fake_ollama.embeddings["odd"] = {"embedding": "not a vector"}
    gateway = make_gateway(fake_ollama.url)

    with pytest.raises(EmbeddingError, match="Invalid embedding payload"):
        await gateway.embed("odd")


@pytest.mark.asyncio
async def test_embed_rejects_payload_without_embedding(fake_ollama) -> None:
    fake_ollama.embeddings["empty"] = {"error": "model not loaded"}
    gateway = make_gateway(fake_ollama.url)

    with pytest.raises(EmbeddingError):
        await gateway.embed("empty")


@pytest.mark.asyncio
async def test_embed_raises_when_unreachable() -> None:
    gateway = make_gateway("http://127.0.0.1:1")

    with pytest.raises(EmbeddingError):
        await gateway.embed("anything")


@pytest.mark.asyncio
async def test_batch_keeps_order_and_marks_failures(fake_ollama) -> None:
    fake_ollama.embeddings["first"] = [1.0, 0.0, 0.0]
    fake_ollama.embeddings["third"] = [0.0, 0.0, 1.0]
    fake_ollama.embedding_failures.append("second")
    gateway = make_gateway(fake_ollama.url)

    vectors = await gateway.embed_batch(["first", "second", "third"])

    assert vectors == [[1.0, 0.0, 0.0], [], [0.0, 0.0, 1.0]]
    prompts = [request["body"]["prompt"] for request in fake_ollama.requests]
    assert prompts == ["first", "second", "third"]


def test_is_valid_embedding() -> None:
    gateway = make_gateway("http://localhost:11434", dimensions=1536)

    assert gateway.is_valid_embedding([0.1] * 1536)
    assert gateway.is_valid_embedding(tuple([1] * 1536))
    assert not gateway.is_valid_embedding([0.1] * 1535)
    assert not gateway.is_valid_embedding([])
    assert not gateway.is_valid_embedding(None)
    assert not gateway.is_valid_embedding("0.1" * 1536)
    assert not gateway.is_valid_embedding([0.1] * 1535 + ["0.1"])
    assert not gateway.is_valid_embedding([0.1] * 1535 + [True])
    assert not gateway.is_valid_embedding([0.1] * 1535 + [math.nan])
    assert not gateway.is_valid_embedding([0.1] * 1535 + [math.inf])

