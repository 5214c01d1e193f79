from dynamic_memory.runtime.models import ChatMessage
from dynamic_memory.runtime.window import is_preamble, split_window

from conftest import bot_msg, sys_msg, user_msg


def eleven(name: str = "U") -> ChatMessage:
    # "U: xxxxxxx\n" renders to 11 characters
    return ChatMessage(name=name, text="x" * 7, is_user=True)


class TestPreamble:
    def test_system_flag_or_system_name(self):
        assert is_preamble(sys_msg("rules"))
        assert is_preamble(ChatMessage(name="System", text="note"))
        assert not is_preamble(bot_msg("hello"))

    def test_user_message_is_never_preamble(self):
        assert not is_preamble(ChatMessage(name="System", text="hi", is_user=True, is_system=True))

    def test_all_preamble_means_nothing_to_do(self):
        chat = [sys_msg("a"), sys_msg("b"), ChatMessage(name="System", text="c")]
        assert split_window(chat, 1000) is None

    def test_empty_chat_means_nothing_to_do(self):
        assert split_window([], 1000) is None

    def test_preamble_stops_at_first_non_system_message(self):
        chat = [sys_msg("a"), user_msg("hi"), sys_msg("mid-chat note")]
        window = split_window(chat, 1000)
        assert window.preamble == [chat[0]]
        assert window.present == chat[1:]


class TestPresentWindow:
    def test_small_chat_has_no_history(self):
        chat = [sys_msg("rules"), user_msg("hi"), bot_msg("hello"), user_msg("go on")]
        window = split_window(chat, 1000)
        assert window.preamble == [chat[0]]
        assert window.history == []
        assert window.present == chat[1:]

    def test_backward_scan_keeps_whole_messages(self):
        chat = [eleven(), eleven(), eleven(), eleven()]
        window = split_window(chat, 25)
        assert window.history == chat[:2]
        assert window.present == chat[2:]

    def test_threshold_is_inclusive(self):
        chat = [eleven(), eleven(), eleven()]
        window = split_window(chat, 22)
        assert window.history == chat[:1]
        assert window.present == chat[1:]

    def test_rendering_overhead_counts(self):
        # raw text is 7 chars, rendered form is 11
        chat = [eleven(), eleven()]
        window = split_window(chat, 14)
        assert window.history == chat[:1]
        assert window.present == chat[1:]

    def test_oversized_latest_message_leaves_history_empty(self):
        chat = [user_msg("hi"), bot_msg("ok"), user_msg("y" * 500)]
        window = split_window(chat, 100)
        assert window.history == []
        assert window.present == chat

    def test_partitions_preserve_order_and_count(self):
        chat = [sys_msg("rules"), sys_msg("persona")] + [eleven(str(i)) for i in range(6)]
        window = split_window(chat, 30)
        assert window.preamble + window.history + window.present == chat

    def test_present_situation_text(self):
        chat = [user_msg("a" * 50), bot_msg("hello"), user_msg("go on")]
        window = split_window(chat, 30)
        assert window.present_situation() == "Bot: hello\nUser: go on"
