# tests/test_models.py

import pytest
from pydantic import BaseModel, ConfigDict, ValidationError

from discovery.config import load_config
from discovery.models import EMPTY_KEY, InstanceKey, is_empty_key


class HostKey(BaseModel):
    """Key type that cannot be built without arguments."""

    model_config = ConfigDict(frozen=True)

    host: str


def test_instance_key_is_hashable_and_immutable():
    key = InstanceKey(hostname="db-1", port=3306)
    assert {key: 1}[InstanceKey(hostname="db-1", port=3306)] == 1
    assert str(key) == "db-1:3306"
    with pytest.raises(ValidationError):
        key.port = 3307


@pytest.mark.parametrize("key, expected", [
    (EMPTY_KEY, True),
    (InstanceKey(hostname="db-1", port=0), True),
    (InstanceKey(hostname="", port=3306), True),
    (InstanceKey(hostname="db-1", port=3306), False),
    (None, True),
    ("", True),
    (0, True),
    ((), True),
    ("db-1", False),
    (42, False),
    (("db-1", 3306), False),
    (b"", True),
    (0.0, True),
    (frozenset(), False),
    (HostKey(host="db-1"), False),
])
def test_is_empty_key(key, expected):
    assert is_empty_key(key) is expected


def test_load_config_rejects_non_positive_concurrency():
    assert load_config(max_concurrency=4).max_concurrency == 4
    with pytest.raises(ValidationError):
        load_config(max_concurrency=0)
