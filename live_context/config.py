from __future__ import annotations

from typing import TYPE_CHECKING, Any

from live_context.storage.base import StorageBackend

if TYPE_CHECKING:
    from live_context.llm.base import BaseLLMClient

DEFAULT_DATA_DIR = "~/.local/share/live-context"


class _Registry[T]:
    """Lazily-populated factory registry.

    Each backend module registers itself via :meth:`register`.
    :meth:`build` resolves a provider name to a factory, calling
    ``factory.from_config(config)`` if available, otherwise
    ``factory(**config)``.
    """

    def __init__(self, label: str) -> None:
        self._label = label
        self._factories: dict[str, type[T]] = {}
        self._defaults_loaded = False

    def register(self, name: str, cls: type[T]) -> None:
        self._factories[name] = cls

    def available(self) -> list[str]:
        self._ensure_defaults()
        return list(self._factories)

    def _ensure_defaults(self) -> None:
        if not self._defaults_loaded:
            self._load_defaults()
            self._defaults_loaded = True

    def build(self, provider: str, config: dict[str, Any]) -> T:
        self._ensure_defaults()

        factory = self._factories.get(provider)
        if factory is None:
            raise ValueError(
                f"Unknown {self._label} provider '{provider}'. "
                f"Available: {list(self._factories)}"
            )
        if hasattr(factory, "from_config"):
            return factory.from_config(config)  # type: ignore[return-value]
        return factory(**config)  # type: ignore[return-value]

    def _load_defaults(self) -> None:
        """Override point: subclasses populate built-in factories here."""


class _StorageRegistry(_Registry[StorageBackend]):
    def _load_defaults(self) -> None:
        from live_context.storage.disk import DiskStorage

        self.register("disk", DiskStorage)

        try:
            from live_context.storage.sqlite import SQLiteStorage

            self.register("sqlite", SQLiteStorage)
        except ImportError:
            pass

    def build(self, provider: str, config: dict[str, Any]) -> StorageBackend:
        if provider == "disk" and "base_path" not in config:
            config = {**config, "base_path": DEFAULT_DATA_DIR}
        return super().build(provider, config)


class _LLMRegistry(_Registry["BaseLLMClient"]):
    def _load_defaults(self) -> None:
        from live_context.llm.litellm import LiteLLMClient

        self.register("openai", LiteLLMClient)


# Singleton instances
storage_registry = _StorageRegistry("storage")
llm_registry = _LLMRegistry("llm")


def parse_config(
    config: dict[str, Any],
) -> tuple[StorageBackend, BaseLLMClient]:
    """Parse a user config dict and return (storage, llm_client).

    Expected shape::

        {
            "storage": {"provider": "disk", "config": {"base_path": "~/.lc"}},
            "llm": {"provider": "openai", "api_key": "sk-...", "model": "gpt-4o"},
        }

    Both sections are optional.  Without an ``llm`` section the client
    has no API key, and every remote call reports the capability as
    unavailable instead of failing at start-up.
    """
    storage_cfg = config.get("storage") or {}
    llm_cfg = config.get("llm") or {}

    storage = storage_registry.build(
        storage_cfg.get("provider", "disk"),
        storage_cfg.get("config", {}),
    )
    llm_client = llm_registry.build(
        llm_cfg.get("provider", "openai"),
        llm_cfg,
    )

    return storage, llm_client
