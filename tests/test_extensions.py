"""Tests for gtmlayer.extensions — registry and file loading."""

from pathlib import Path

import pytest

from gtmlayer.datalayer import DataLayer
from gtmlayer.errors import ConfigurationError, ExtensionNotFoundError
from gtmlayer.extensions import ExtensionRegistry, load_extensions


def _noop(layer: DataLayer) -> None:
    return None


class TestRegistry:
    def test_register_and_get(self) -> None:
        registry = ExtensionRegistry()
        returned = registry.register("noop", _noop)
        assert returned is _noop
        ext = registry.get("noop")
        assert ext is not None
        assert ext.name == "noop"
        assert ext.func is _noop
        assert "noop" in registry
        assert len(registry) == 1
        assert registry.names() == ("noop",)

    def test_get_missing_returns_none(self) -> None:
        assert ExtensionRegistry().get("missing") is None

    def test_resolve_missing_raises(self) -> None:
        with pytest.raises(ExtensionNotFoundError):
            ExtensionRegistry().resolve("missing")

    def test_resolve_missing_is_a_key_error(self) -> None:
        with pytest.raises(KeyError):
            ExtensionRegistry().resolve("missing")

    def test_duplicate_name_raises(self) -> None:
        registry = ExtensionRegistry()
        registry.register("noop", _noop)
        with pytest.raises(ConfigurationError, match="Duplicate extension name"):
            registry.register("noop", _noop)

    def test_replace_allows_duplicate(self) -> None:
        registry = ExtensionRegistry()
        registry.register("noop", _noop)
        other = lambda layer: 1  # noqa: E731
        registry.register("noop", other, replace=True)
        assert registry.resolve("noop") is other

    @pytest.mark.parametrize("name", ["", "has space", "1abc", "_private", "a-b"])
    def test_invalid_names_rejected(self, name: str) -> None:
        with pytest.raises(ConfigurationError, match="public identifier"):
            ExtensionRegistry().register(name, _noop)

    def test_non_callable_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="must be callable"):
            ExtensionRegistry().register("x", "not callable")  # type: ignore[arg-type]

    def test_unregister(self) -> None:
        registry = ExtensionRegistry()
        registry.register("noop", _noop)
        registry.unregister("noop")
        assert "noop" not in registry


class TestFreeze:
    def test_register_after_freeze_raises(self) -> None:
        registry = ExtensionRegistry()
        registry.register("noop", _noop)
        registry.freeze()
        assert registry.frozen
        with pytest.raises(ConfigurationError, match="frozen"):
            registry.register("late", _noop)
        # Lookups keep working
        assert registry.resolve("noop") is _noop

    def test_unregister_after_freeze_raises(self) -> None:
        registry = ExtensionRegistry()
        registry.register("noop", _noop)
        registry.freeze()
        with pytest.raises(ConfigurationError, match="frozen"):
            registry.unregister("noop")

    def test_freeze_is_idempotent(self) -> None:
        registry = ExtensionRegistry()
        registry.freeze()
        registry.freeze()
        assert "frozen" in repr(registry)

    def test_macro_decorator_after_freeze_raises(
        self, fresh_extensions: ExtensionRegistry
    ) -> None:
        fresh_extensions.freeze()
        with pytest.raises(ConfigurationError):

            @DataLayer.macro("late")
            def late(layer: DataLayer) -> None:
                pass


class TestLoadExtensions:
    def test_file_registering_via_macro(
        self, tmp_path: Path, fresh_extensions: ExtensionRegistry
    ) -> None:
        path = tmp_path / "gtm_macros.py"
        path.write_text(
            "from gtmlayer import DataLayer\n"
            "\n"
            "@DataLayer.macro('impression')\n"
            "def impression(layer, sku, position=1):\n"
            "    layer.push({'event': 'impression', 'sku': sku, 'position': position})\n"
        )
        load_extensions(path, fresh_extensions)

        layer = DataLayer()
        layer.impression("sku-1", position=2)
        assert layer.pushes() == ({"event": "impression", "sku": "sku-1", "position": 2},)

    def test_file_with_register_hook(self, tmp_path: Path) -> None:
        path = tmp_path / "hooked.py"
        path.write_text(
            "def page_type(layer, value):\n"
            "    layer.set('page.type', value)\n"
            "\n"
            "def register(registry):\n"
            "    registry.register('page_type', page_type)\n"
        )
        registry = ExtensionRegistry()
        assert not registry.loaded_from(path)
        load_extensions(str(path), registry)
        assert registry.names() == ("page_type",)
        assert registry.loaded_from(path)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_extensions(tmp_path / "missing.py", ExtensionRegistry())

    def test_file_error_is_wrapped(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.py"
        path.write_text("raise RuntimeError('boom')\n")
        with pytest.raises(ConfigurationError, match="boom") as exc_info:
            load_extensions(path, ExtensionRegistry())
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_duplicate_registration_in_file_propagates(self, tmp_path: Path) -> None:
        path = tmp_path / "dupes.py"
        path.write_text(
            "def register(registry):\n"
            "    registry.register('a', print)\n"
            "    registry.register('a', print)\n"
        )
        with pytest.raises(ConfigurationError, match="Duplicate"):
            load_extensions(path, ExtensionRegistry())
