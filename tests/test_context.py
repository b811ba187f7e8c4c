"""Tests for gtmlayer.context — request-scoped data layer access."""

import pytest

from gtmlayer.context import SCOPE_KEY, datalayer_from_scope, datalayer_var, get_datalayer
from gtmlayer.datalayer import DataLayer


class TestGetDataLayer:
    def test_raises_outside_request(self) -> None:
        with pytest.raises(LookupError, match="No active data layer"):
            get_datalayer()

    def test_set_and_get(self) -> None:
        layer = DataLayer()
        token = datalayer_var.set(layer)
        try:
            assert get_datalayer() is layer
        finally:
            datalayer_var.reset(token)


class TestDataLayerFromScope:
    def test_returns_layer(self) -> None:
        layer = DataLayer()
        assert datalayer_from_scope({SCOPE_KEY: layer}) is layer

    def test_missing_raises(self) -> None:
        with pytest.raises(LookupError, match="no data layer"):
            datalayer_from_scope({})

    def test_wrong_type_raises(self) -> None:
        with pytest.raises(LookupError):
            datalayer_from_scope({SCOPE_KEY: {"not": "a layer"}})
