import pytest

from smart_search.services.ai.health import ProviderHealthCache
from smart_search.services.ai.orchestrator import AIOrchestrator
from smart_search.services.ai.types import FALLBACK_PROVIDER_NAME, ResponseSource
from smart_search.services.errors import ProviderError, ProviderErrorType, ProviderNotFoundError
from smart_search.tests.fakes import ScriptedProvider, make_match


def network_error() -> ProviderError:
    return ProviderError("Network connection failed", ProviderErrorType.NETWORK, retryable=True)


def make_orchestrator(provider, recording_sleep, fake_clock, **kwargs) -> AIOrchestrator:
    options = {
        "primary_provider": "fake",
        "fallback_enabled": True,
        "max_retries": 2,
        "retry_delay": 100,
        "health_check_interval": 30000,
    }
    options.update(kwargs)
    return AIOrchestrator(
        providers={"fake": provider} if provider else {},
        sleep=recording_sleep,
        clock=fake_clock,
        **options,
    )


@pytest.mark.asyncio
async def test_successful_attempt_returns_ai_response(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider(["Use memoization."])
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)

    response = await orchestrator.generate_response("react", [make_match(0.9)])

    assert response.source == ResponseSource.AI
    assert response.content == "Use memoization."
    assert response.metadata.provider == "fake"
    assert response.metadata.retry_count is None
    assert response.metadata.fallback_reason is None
    assert provider.generate_calls == 1
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_retryable_failures_use_every_attempt(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider([network_error()])
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)

    response = await orchestrator.generate_response("react", [make_match(0.9)])

    assert provider.generate_calls == 3
    assert response.source == ResponseSource.FALLBACK
    assert response.metadata.provider == FALLBACK_PROVIDER_NAME
    assert response.metadata.retry_count == 2
    assert response.metadata.fallback_reason == "Network connection failed"
    assert recording_sleep.delays == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_non_retryable_failure_falls_back_at_once(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider(
        [ProviderError("Authentication failed (401)", ProviderErrorType.AUTH, retryable=False)]
    )
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)

    response = await orchestrator.generate_response("react", [])

    assert provider.generate_calls == 1
    assert response.source == ResponseSource.FALLBACK
    assert response.metadata.retry_count == 0
    assert response.metadata.fallback_reason == "Authentication failed (401)"
    assert response.metadata.confidence == 0.1
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_success_after_retry_reports_retry_count(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider([network_error(), "Second time lucky."])
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)

    response = await orchestrator.generate_response("react", [])

    assert response.source == ResponseSource.AI
    assert response.content == "Second time lucky."
    assert response.metadata.retry_count == 1
    assert recording_sleep.delays == pytest.approx([0.1])


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider([network_error()])
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock, max_retries=0)

    response = await orchestrator.generate_response("react", [])

    assert provider.generate_calls == 1
    assert response.metadata.retry_count == 0


@pytest.mark.asyncio
async def test_unexpected_exception_is_classified(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider([RuntimeError("kaboom")])
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)

    response = await orchestrator.generate_response("react", [])

    assert provider.generate_calls == 1
    assert response.source == ResponseSource.FALLBACK
    assert response.metadata.fallback_reason == "kaboom"


@pytest.mark.asyncio
async def test_disabled_fallback_raises_last_error(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider([network_error()])
    orchestrator = make_orchestrator(
        provider, recording_sleep, fake_clock, fallback_enabled=False
    )

    with pytest.raises(ProviderError) as exc_info:
        await orchestrator.generate_response("react", [])

    assert exc_info.value.type == ProviderErrorType.NETWORK
    assert provider.generate_calls == 3


@pytest.mark.asyncio
async def test_missing_primary_provider_falls_back(recording_sleep, fake_clock) -> None:
    orchestrator = make_orchestrator(None, recording_sleep, fake_clock)

    response = await orchestrator.generate_response("react", [make_match(0.8)])

    assert response.source == ResponseSource.FALLBACK
    assert response.metadata.retry_count == 2
    assert response.metadata.fallback_reason == "Primary AI provider not available"


@pytest.mark.asyncio
async def test_cached_unhealthy_provider_is_never_called(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider(["never used"], healthy=True)
    health_cache = ProviderHealthCache(clock=fake_clock)
    health_cache.set("fake", False)
    orchestrator = AIOrchestrator(
        providers={"fake": provider},
        primary_provider="fake",
        fallback_enabled=True,
        max_retries=2,
        retry_delay=100,
        health_check_interval=30000,
        health_cache=health_cache,
        sleep=recording_sleep,
        clock=fake_clock,
    )

    first = await orchestrator.generate_response("react", [make_match(0.9)])
    fake_clock.advance(10)
    second = await orchestrator.generate_response("react", [make_match(0.9)])

    assert provider.generate_calls == 0
    assert provider.health_calls == 0
    for response in (first, second):
        assert response.source == ResponseSource.FALLBACK
        assert response.metadata.fallback_reason == "Primary provider failed health check"


@pytest.mark.asyncio
async def test_stale_health_is_checked_live(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider(["Fresh answer."], healthy=True)
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)
    orchestrator.health_cache.set("fake", False)
    fake_clock.advance(31)

    response = await orchestrator.generate_response("react", [])

    assert response.source == ResponseSource.AI
    assert provider.health_calls == 1
    assert orchestrator.health_cache.get("fake").healthy is True


@pytest.mark.asyncio
async def test_health_is_checked_once_per_interval(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider(["ok"], healthy=True)
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)

    await orchestrator.generate_response("one", [])
    await orchestrator.generate_response("two", [])
    assert provider.health_calls == 1

    fake_clock.advance(30)
    await orchestrator.generate_response("three", [])
    assert provider.health_calls == 2


@pytest.mark.asyncio
async def test_health_status_and_service_info(recording_sleep, fake_clock) -> None:
    healthy = ScriptedProvider(["ok"], healthy=True, name="fake")
    broken = ScriptedProvider(["ok"], healthy=False, name="spare")
    orchestrator = make_orchestrator(healthy, recording_sleep, fake_clock)
    orchestrator.add_provider("spare", broken)

    assert await orchestrator.get_health_status() == {"fake": True, "spare": False}

    info = orchestrator.get_service_info()
    assert info["primary_provider"] == "fake"
    assert info["fallback_enabled"] is True
    assert info["retry_attempts"] == 2
    assert info["providers"]["fake"]["healthy"] is True
    assert info["providers"]["spare"]["healthy"] is False
    assert info["providers"]["fake"]["config"]["model"] == "fake-model"
    assert info["providers"]["fake"]["last_health_check"] is not None


@pytest.mark.asyncio
async def test_switching_primary_provider(recording_sleep, fake_clock) -> None:
    orchestrator = make_orchestrator(ScriptedProvider(["a"]), recording_sleep, fake_clock)
    orchestrator.add_provider("spare", ScriptedProvider(["from spare"], name="spare"))

    orchestrator.set_primary_provider("spare")
    response = await orchestrator.generate_response("q", [])

    assert response.content == "from spare"
    with pytest.raises(ProviderNotFoundError, match="Provider missing not found"):
        orchestrator.set_primary_provider("missing")

    assert orchestrator.remove_provider("spare") is True
    assert orchestrator.remove_provider("spare") is False


@pytest.mark.asyncio
async def test_test_provider(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider(["Hi there"])
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)
    orchestrator.add_provider("broken", ScriptedProvider([network_error()], name="broken"))

    assert await orchestrator.test_provider() is True
    assert provider.queries == ["Hello, how are you?"]
    assert await orchestrator.test_provider("broken") is False
    with pytest.raises(ProviderNotFoundError):
        await orchestrator.test_provider("missing")


@pytest.mark.asyncio
async def test_pull_model_needs_ollama(recording_sleep, fake_clock) -> None:
    orchestrator = make_orchestrator(ScriptedProvider(["a"]), recording_sleep, fake_clock)

    with pytest.raises(ValueError):
        await orchestrator.pull_model("llama3.1")
    assert await orchestrator.list_available_models() == []


@pytest.mark.asyncio
async def test_update_config_and_shutdown(recording_sleep, fake_clock) -> None:
    provider = ScriptedProvider([network_error()])
    orchestrator = make_orchestrator(provider, recording_sleep, fake_clock)

    orchestrator.update_config(fallback_enabled=False, max_retries=1)
    with pytest.raises(ProviderError):
        await orchestrator.generate_response("q", [])
    assert provider.generate_calls == 2

    await orchestrator.shutdown()
    assert orchestrator.providers == {}
    assert orchestrator.health_cache.get("fake") is not None
