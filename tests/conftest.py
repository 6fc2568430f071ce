import pytest
from opentelemetry import trace


@pytest.fixture(autouse=True)
def disable_tracing():
    """Use an SDK tracer provider so pipeline spans are never exported to stdout."""
    from opentelemetry.sdk.trace import TracerProvider

    trace.set_tracer_provider(TracerProvider())
    yield


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached per process; drop the cache around each test."""
    from chainpilot.config import get_platform_settings

    get_platform_settings.cache_clear()
    yield
    get_platform_settings.cache_clear()
