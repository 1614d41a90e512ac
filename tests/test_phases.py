import json

import pytest

from conftest import FakeBackend
from firstdraft.config import Settings
from firstdraft.engine.draft_loop import ChapterDraftLoop
from firstdraft.exceptions import OutlineParseError, PhaseError, TransportError
from firstdraft.generators.prompt_builders import INTERVIEW_SYSTEM, OPENING_MESSAGE, OUTLINE_SYSTEM
from firstdraft.models import Role
from firstdraft.phases import PhaseController
from firstdraft.session import Phase


def _controller(stream_replies=(), complete_replies=(), threshold=8):
    backend = FakeBackend(stream_replies, complete_replies)
    return PhaseController(backend, Settings(ready_threshold=threshold)), backend


def _interviewed(answers=7, **kw):
    """Controller after start() plus *answers* author replies."""
    replies = ["Welcome! What is your book about?"] + [f"Question {i}?" for i in range(answers)]
    ctl, backend = _controller(stream_replies=replies, **kw)
    ctl.start().result()
    for i in range(answers):
        ctl.respond(f"Answer {i}").result()
    return ctl, backend


def test_start_seeds_opening_and_editor_reply():
    ctl, backend = _controller(stream_replies=["Welcome! Tell me about the book."])
    gen = ctl.start()
    assert ctl.state.phase is Phase.INTERVIEW
    assert len(ctl.state.log) == 0

    snapshots = list(gen)
    assert snapshots[-1] == "Welcome! Tell me about the book."
    assert gen.text == snapshots[-1]
    assert [ex.role for ex in ctl.state.log] == [Role.AUTHOR, Role.EDITOR]
    assert ctl.state.log[0].content == OPENING_MESSAGE
    assert ctl.state.log[1].content == "Welcome! Tell me about the book."

    _, system, messages = backend.calls[0]
    assert system == INTERVIEW_SYSTEM
    assert messages == [{"role": "user", "content": OPENING_MESSAGE}]


def test_partial_buffer_tracks_stream_and_clears():
    ctl, _ = _controller(stream_replies=["A fairly long editor greeting."])
    gen = ctl.start()
    first = next(gen)
    assert ctl.state.partial == first
    assert ctl.state.loading
    assert len(ctl.state.log) == 0
    gen.result()
    assert ctl.state.partial == ""
    assert not ctl.state.loading


def test_respond_sends_full_history():
    ctl, backend = _interviewed(answers=1)
    _, system, messages = backend.calls[-1]
    assert system == INTERVIEW_SYSTEM
    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert messages[-1]["content"] == "Answer 0"
    assert len(ctl.state.log) == 4


def test_respond_rejects_blank():
    ctl, _ = _interviewed(answers=0)
    with pytest.raises(ValueError):
        ctl.respond("   ")


def test_transport_failure_leaves_log_unchanged():
    ctl, _ = _controller(stream_replies=["Hello.", TransportError("relay down", 502)])
    ctl.start().result()
    with pytest.raises(TransportError):
        ctl.respond("My answer").result()
    assert len(ctl.state.log) == 2
    assert isinstance(ctl.state.last_error, TransportError)
    assert ctl.state.partial == ""
    assert not ctl.state.loading


def test_start_can_be_retried_after_failure():
    ctl, _ = _controller(stream_replies=[TransportError("down"), "Hello again."])
    with pytest.raises(TransportError):
        ctl.start().result()
    assert ctl.state.phase is Phase.INTERVIEW
    ctl.start().result()
    assert len(ctl.state.log) == 2
    with pytest.raises(PhaseError):
        ctl.start()


def test_readiness_exactly_at_threshold_and_sticky():
    replies = ["Hi."] + [f"Q{i}?" for i in range(10)]
    ctl, _ = _controller(stream_replies=replies)
    ctl.start().result()
    flags = []
    for i in range(10):
        ctl.respond(f"A{i}").result()
        flags.append((ctl.state.log.count(Role.AUTHOR), ctl.state.ready_for_outline))
    for authors, ready in flags:
        assert ready == (authors >= 8)
    assert flags[-1] == (11, True)


def test_readiness_threshold_is_configurable():
    ctl, _ = _interviewed(answers=2, threshold=3)
    assert ctl.state.ready_for_outline


def test_closed_generation_commits_nothing():
    ctl, _ = _controller(stream_replies=["Hello.", "A very long reply that we abandon."])
    ctl.start().result()
    gen = ctl.respond("Answer")
    next(gen)
    gen.close()
    assert len(ctl.state.log) == 2
    assert ctl.state.partial == ""
    assert not ctl.state.loading


def test_outline_requires_readiness():
    ctl, _ = _interviewed(answers=2)
    with pytest.raises(PhaseError):
        ctl.generate_outline()
    assert ctl.state.phase is Phase.INTERVIEW


def test_outline_installed_from_fenced_json(outline_doc):
    fenced = "```json\n" + json.dumps(outline_doc) + "\n```"
    ctl, backend = _interviewed(answers=7, complete_replies=[fenced])
    assert ctl.state.ready_for_outline

    outline = ctl.generate_outline()
    assert ctl.state.phase is Phase.OUTLINE
    assert ctl.state.outline == outline
    assert outline.model_dump(by_alias=True) == outline_doc

    kind, system, messages = backend.calls[-1]
    assert kind == "complete"
    assert system == OUTLINE_SYSTEM
    content = messages[0]["content"]
    assert content.startswith("Here is the full interview transcript:")
    assert f"AUTHOR: {OPENING_MESSAGE}" in content
    assert "EDITOR: Question 6?" in content


def test_bad_outline_installs_nothing():
    ctl, _ = _interviewed(answers=7, complete_replies=["```json\nSorry, I can't.\n```"])
    with pytest.raises(OutlineParseError):
        ctl.generate_outline()
    assert ctl.state.outline is None
    assert isinstance(ctl.state.last_error, OutlineParseError)
    assert not ctl.state.loading


def test_regeneration_replaces_outline(outline_doc):
    second = dict(outline_doc, title="Second Try")
    ctl, _ = _interviewed(
        answers=7,
        complete_replies=[json.dumps(outline_doc), "not json", json.dumps(second)],
    )
    first = ctl.generate_outline()
    with pytest.raises(OutlineParseError):
        ctl.generate_outline()
    assert ctl.state.outline is first
    assert ctl.generate_outline().title == "Second Try"


def test_approve_without_outline_is_noop():
    ctl, _ = _interviewed(answers=7, complete_replies=[TransportError("down")])
    with pytest.raises(TransportError):
        ctl.generate_outline()
    assert ctl.approve_outline() is None
    assert ctl.state.phase is Phase.OUTLINE


def test_approve_starts_drafting(outline_doc):
    ctl, _ = _interviewed(answers=7, complete_replies=[json.dumps(outline_doc)])
    ctl.generate_outline()
    loop = ctl.approve_outline()
    assert isinstance(loop, ChapterDraftLoop)
    assert ctl.state.phase is Phase.DRAFTING
    with pytest.raises(PhaseError):
        ctl.respond("too late")
