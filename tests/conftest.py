"""
Root pytest configuration and shared fixtures.
"""

import json
from typing import Any, Dict, Union

import pytest
from mcp.types import TextContent

from statamic_mcp.config import ServerConfig, set_config
from statamic_mcp.core.cache import MemoryCacheBackend, ToolCache
from statamic_mcp.core.rate_limit import RateLimitManager
from statamic_mcp.core.runtime import StaticRuntimeInspector, set_runtime_inspector
from statamic_mcp.store import InMemoryContentStore


def extract_response_dict(result: Union[Dict[str, Any], TextContent]) -> Dict[str, Any]:
    """Extract dict from tool result, handling both dict and TextContent.

    Tools wrapped with the canonical_tool decorator return TextContent with
    minified JSON. This helper extracts the dict for test assertions.
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(f"Expected dict or TextContent, got {type(result).__name__}")


@pytest.fixture(autouse=True)
def runtime_versions():
    """Pin the reported runtime versions for every test."""
    set_runtime_inspector(StaticRuntimeInspector(statamic="5.4.0", laravel="11.9.2"))
    yield
    set_runtime_inspector(StaticRuntimeInspector())


@pytest.fixture
def testing_config() -> ServerConfig:
    """Config in the testing environment (safety gate bypassed)."""
    config = ServerConfig(environment="testing", log_level="WARNING")
    set_config(config)
    return config


@pytest.fixture
def production_config() -> ServerConfig:
    """Config in the production environment (safety gate enforced)."""
    config = ServerConfig(environment="production", log_level="WARNING")
    set_config(config)
    return config


@pytest.fixture
def local_config() -> ServerConfig:
    """Config in the local environment (debug detail in errors)."""
    config = ServerConfig(environment="local", log_level="WARNING")
    set_config(config)
    return config


@pytest.fixture
def memory_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def seeded_store(memory_store: InMemoryContentStore) -> InMemoryContentStore:
    """A store with a blog collection, a tags taxonomy and an article blueprint."""
    memory_store.create_collection("blog", {"title": "Blog", "route": "/blog/{slug}"})
    memory_store.create_taxonomy("tags", {"title": "Tags"})
    memory_store.create_blueprint(
        "collections.blog",
        "article",
        {
            "title": "Article",
            "tabs": {
                "main": {
                    "sections": [
                        {
                            "fields": [
                                {"handle": "title", "field": {"type": "text"}},
                                {"handle": "hero_image", "field": {"type": "assets"}},
                                {"handle": "body", "field": {"type": "markdown"}},
                            ]
                        }
                    ]
                }
            },
        },
    )
    memory_store.create_entry("blog", {"title": "Hello World"}, slug="hello-world")
    return memory_store


@pytest.fixture
def memory_cache() -> ToolCache:
    return ToolCache(MemoryCacheBackend())


@pytest.fixture
def rate_limiter() -> RateLimitManager:
    return RateLimitManager()
