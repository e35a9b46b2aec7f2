"""Tests for providers, application kinds and the provider registry."""

import pytest

from ccswitch.core.errors import AppKindNotFound, InvalidOperation, ProviderNotFound
from ccswitch.core.provider import AppType, Provider, ProviderRegistry


def _provider(provider_id: str, name: str = "", **kwargs) -> Provider:
    return Provider(id=provider_id, name=name or provider_id, settings_config={"env": {}}, **kwargs)


class TestAppType:
    def test_parse_known_kinds(self):
        assert AppType.parse("claude") is AppType.CLAUDE
        assert AppType.parse("codex") is AppType.CODEX

    def test_parse_is_case_insensitive(self):
        assert AppType.parse(" Codex ") is AppType.CODEX
        assert AppType("CLAUDE") is AppType.CLAUDE

    def test_parse_rejects_unknown_kind(self):
        with pytest.raises(AppKindNotFound) as excinfo:
            AppType.parse("vscode")
        assert "vscode" in str(excinfo.value)
        assert excinfo.value.app == "vscode"

    def test_parse_accepts_enum_member(self):
        assert AppType.parse(AppType.CODEX) is AppType.CODEX


class TestProviderSerialization:
    def test_uses_camel_case_keys(self):
        provider = Provider(
            id="p1",
            name="Packy",
            settings_config={"env": {"ANTHROPIC_BASE_URL": "https://example.com"}},
            website_url="https://example.com",
            category="third_party",
            created_at=1700000000000,
        )
        data = provider.to_json_dict()
        assert data == {
            "id": "p1",
            "name": "Packy",
            "settingsConfig": {"env": {"ANTHROPIC_BASE_URL": "https://example.com"}},
            "websiteUrl": "https://example.com",
            "category": "third_party",
            "createdAt": 1700000000000,
        }

    def test_omits_unset_optional_fields(self):
        data = _provider("p1").to_json_dict()
        assert set(data) == {"id", "name", "settingsConfig"}

    def test_keeps_null_values_inside_payload(self):
        provider = Provider(id="p1", name="P", settings_config={"model": None})
        assert provider.to_json_dict()["settingsConfig"] == {"model": None}

    def test_parses_camel_case_json(self):
        provider = Provider.model_validate(
            {"id": "p1", "name": "P", "settingsConfig": {"a": 1}, "websiteUrl": "https://x"}
        )
        assert provider.settings_config == {"a": 1}
        assert provider.website_url == "https://x"
        assert provider.created_at is None


class TestProviderRegistry:
    def test_empty_registry(self):
        registry = ProviderRegistry.empty()
        assert registry.is_empty()
        assert registry.get_current() == ""
        assert registry.check_invariant()

    def test_insert_or_replace_upserts_by_id(self):
        registry = ProviderRegistry.empty()
        registry.insert_or_replace(_provider("a", "First"))
        registry.insert_or_replace(_provider("a", "Second"))
        assert list(registry.providers) == ["a"]
        assert registry.get("a").name == "Second"

    def test_get_missing_raises_not_found(self):
        registry = ProviderRegistry.empty()
        with pytest.raises(ProviderNotFound) as excinfo:
            registry.get("missing")
        assert excinfo.value.provider_id == "missing"

    def test_list_returns_copies(self):
        registry = ProviderRegistry.empty()
        registry.insert_or_replace(_provider("a"))
        snapshot = registry.list()
        snapshot["a"].settings_config["env"]["X"] = "1"
        snapshot.pop("a")
        assert registry.get("a").settings_config == {"env": {}}

    def test_remove_current_is_rejected(self):
        registry = ProviderRegistry.empty()
        registry.insert_or_replace(_provider("a"))
        registry.set_current("a")
        with pytest.raises(InvalidOperation):
            registry.remove("a")
        assert registry.contains("a")

    def test_remove_returns_removed_provider_then_not_found(self):
        registry = ProviderRegistry.empty()
        registry.insert_or_replace(_provider("a"))
        registry.insert_or_replace(_provider("b"))
        registry.set_current("a")
        removed = registry.remove("b")
        assert removed.id == "b"
        with pytest.raises(ProviderNotFound):
            registry.remove("b")
        assert registry.check_invariant()

    def test_set_current_does_not_validate(self):
        registry = ProviderRegistry.empty()
        registry.set_current("ghost")
        assert registry.get_current() == "ghost"
        assert not registry.check_invariant()

    def test_registry_requires_both_fields(self):
        with pytest.raises(ValueError):
            ProviderRegistry.model_validate({"providers": {}})
