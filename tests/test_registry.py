from __future__ import annotations

from pathlib import Path

import pytest

from live_context.config import parse_config, storage_registry
from live_context.llm.litellm import LiteLLMClient
from live_context.storage.disk import DiskStorage
from live_context.storage.sqlite import SQLiteStorage


class TestParseConfig:
    def test_disk_and_openai(self, tmp_path: Path):
        storage, llm = parse_config(
            {
                "storage": {
                    "provider": "disk",
                    "config": {"base_path": str(tmp_path / "d")},
                },
                "llm": {"provider": "openai", "api_key": "sk-test", "model": "gpt-4o"},
            }
        )
        assert isinstance(storage, DiskStorage)
        assert isinstance(llm, LiteLLMClient)
        assert llm.model == "gpt-4o"

    def test_sqlite(self):
        storage, _ = parse_config(
            {"storage": {"provider": "sqlite", "config": {"path": ":memory:"}}}
        )
        assert isinstance(storage, SQLiteStorage)
        storage.close()

    def test_llm_section_is_optional(self, tmp_path: Path):
        _, llm = parse_config(
            {"storage": {"provider": "disk", "config": {"base_path": str(tmp_path)}}}
        )
        assert isinstance(llm, LiteLLMClient)

    def test_unknown_storage_provider(self):
        with pytest.raises(ValueError, match="Unknown storage provider 'redis'"):
            parse_config({"storage": {"provider": "redis"}})

    def test_unknown_llm_provider(self, tmp_path: Path):
        with pytest.raises(ValueError, match="Unknown llm provider"):
            parse_config(
                {
                    "storage": {"provider": "disk", "config": {"base_path": str(tmp_path)}},
                    "llm": {"provider": "anthropic"},
                }
            )


class TestRegistry:
    def test_available(self):
        assert {"disk", "sqlite"} <= set(storage_registry.available())
