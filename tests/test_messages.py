"""Tests for outbound message construction and schema validation"""

import pytest

from scriptloop.core.errors import ProtocolViolation
from scriptloop.protocol.messages import EntryType, LogLevel, Message, MessageType
from scriptloop.protocol.validator import ProtocolValidator


class TestMessageShapes:
    """Wire form of each report kind"""

    def test_pong(self):
        assert Message.pong().to_dict() == {"type": "pong"}

    def test_completed(self):
        assert Message.completed().to_dict() == {"type": "completed"}

    def test_log(self):
        msg = Message.log(LogLevel.DEBUG, ["a", "b"])

        assert msg.to_dict() == {
            "type": "log",
            "command": "debug",
            "args": {"args": ["a", "b"]},
        }

    def test_result(self):
        msg = Message.result(EntryType.WARNING, "careful")

        assert msg.to_dict() == {
            "type": "result",
            "results": [{"Type": 11, "ContentsFormat": "text", "Contents": "careful"}],
        }

    def test_exception(self):
        msg = Message.exception("Traceback ...")

        assert msg.to_dict() == {"type": "exception", "args": {"exception": "Traceback ..."}}


class TestProtocolValidator:
    """Schema enforcement for outbound frames"""

    @pytest.fixture(scope="class")
    def validator(self):
        return ProtocolValidator()

    @pytest.mark.parametrize(
        "msg",
        [
            Message.pong(),
            Message.completed(),
            Message.log(LogLevel.INFO, ["x"]),
            Message.result(EntryType.NOTE, "hi"),
            Message.exception("boom"),
        ],
    )
    def test_constructed_messages_are_valid(self, validator, msg):
        validator.validate(msg)

    def test_rejects_unknown_entry_type(self, validator):
        msg = Message(
            type=MessageType.RESULT,
            payload={"results": [{"Type": 99, "ContentsFormat": "text", "Contents": ""}]},
        )

        with pytest.raises(ProtocolViolation, match="Invalid result message"):
            validator.validate(msg)

    def test_rejects_extra_fields(self, validator):
        msg = Message(type=MessageType.COMPLETED, payload={"extra": 1})

        with pytest.raises(ProtocolViolation):
            validator.validate(msg)

    def test_rejects_non_string_exception(self, validator):
        msg = Message(type=MessageType.EXCEPTION, payload={"args": {"exception": 3}})

        with pytest.raises(ProtocolViolation):
            validator.validate(msg)
