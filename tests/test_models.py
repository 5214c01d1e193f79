import collections.abc
import dataclasses

import pytest

from dynamic_memory.runtime.models import ChatMessage


def test_chat_message_is_frozen_and_unhashable():
    msg = ChatMessage(name="User", text="hi", is_user=True, extra={"swipes": ["hi"]})

    with pytest.raises(dataclasses.FrozenInstanceError):
        msg.text = "changed"
    with pytest.raises(TypeError):
        hash(msg)
    assert not isinstance(msg, collections.abc.Hashable)


def test_host_fields_survive_a_dict_roundtrip():
    data = {"name": "Bot", "mes": "hello", "is_user": False, "is_system": False, "send_date": 5, "swipes": ["hello"]}
    msg = ChatMessage.from_dict(data)
    assert msg.extra == {"swipes": ["hello"]}
    assert msg.to_dict() == data
