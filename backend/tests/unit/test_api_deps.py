import pytest

from sessionkeeper.api.deps import checked_device_id
from sessionkeeper.services._shared.errors import ValidationError


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_device_id_is_empty(raw):
    assert checked_device_id(raw, source="device-id") == ""


def test_device_id_is_stripped():
    assert checked_device_id("  laptop-1 ", source="device-id") == "laptop-1"


@pytest.mark.parametrize("raw", ["d" * 129, "dev\tice", "dev\x00ice", "dev\x7fice"])
def test_malformed_device_id_is_rejected(raw):
    with pytest.raises(ValidationError) as exc:
        checked_device_id(raw, source="force-logout")

    assert exc.value.code == "invalid_device_id"
    assert "force-logout" in str(exc.value)
