"""Tests for button callback data encoding."""

import pytest

from fleetlog import callbacks
from fleetlog.callbacks import decode_action, encode_action


class TestCallbacks:
    """Tests for the prefix:param convention."""

    def test_without_params(self):
        assert encode_action(callbacks.BATCH_OMIT) == "batch_omit"
        assert decode_action("batch_omit") == ("batch_omit", [])

    def test_force_update_carries_id_and_value(self):
        data = encode_action(callbacks.KM_FORCE, 42, "1500.50")

        assert data == "km_force:42:1500.50"
        assert decode_action(data) == ("km_force", ["42", "1500.50"])

    def test_too_long_rejected(self):
        with pytest.raises(ValueError, match="64 bytes"):
            encode_action(callbacks.FUEL_UNIT, "x" * 64)

    def test_separator_in_param_rejected(self):
        with pytest.raises(ValueError):
            encode_action(callbacks.KM_MANAGE, "1:2")

    def test_all_prefixes_distinct(self):
        prefixes = [value for name, value in vars(callbacks).items() if name.isupper() and isinstance(value, str)]
        prefixes.remove(callbacks.SEPARATOR)

        assert len(prefixes) == len(set(prefixes))
