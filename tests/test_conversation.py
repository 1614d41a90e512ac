from firstdraft.conversation import ConversationLog
from firstdraft.models import Exchange, Role


def _log():
    log = ConversationLog()
    log.append(Exchange(role=Role.AUTHOR, content="I fix boats."))
    log.append(Exchange(role=Role.EDITOR, content="Which boats?"))
    log.append(Exchange(role=Role.AUTHOR, content="Trawlers."))
    return log


def test_transcript_lines():
    transcript = _log().as_transcript()
    assert list(transcript) == [
        "AUTHOR: I fix boats.",
        "EDITOR: Which boats?",
        "AUTHOR: Trawlers.",
    ]
    assert str(transcript) == "AUTHOR: I fix boats.\n\nEDITOR: Which boats?\n\nAUTHOR: Trawlers."


def test_transcript_is_restartable():
    transcript = _log().as_transcript()
    assert list(transcript) == list(transcript)


def test_transcript_snapshot_ignores_later_appends():
    log = _log()
    transcript = log.as_transcript()
    log.append(Exchange(role=Role.EDITOR, content="Go on."))
    assert len(transcript) == 3
    assert len(log) == 4


def test_messages_and_counts():
    log = _log()
    pending = Exchange(role=Role.AUTHOR, content="Mostly diesel.")
    msgs = log.as_messages(pending)
    assert [m["role"] for m in msgs] == ["user", "assistant", "user", "user"]
    assert msgs[-1]["content"] == "Mostly diesel."
    assert len(log) == 3
    assert log.count(Role.AUTHOR) == 2
    assert log.count(Role.EDITOR) == 1
