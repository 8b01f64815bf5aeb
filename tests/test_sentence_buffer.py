import pytest

from livetranslate.store.history import ContextWindow, RecentOutputs
from livetranslate.store.sentence_buffer import SegmentSplit, SentenceBuffer
from livetranslate.store.session import SessionState


def test_fragments_are_space_joined():
    buffer = SentenceBuffer()
    assert buffer.append_fragment("hello there") == "hello there"
    assert buffer.append_fragment("  how ") == "hello there how"
    assert buffer.append_fragment("   ") == "hello there how"


def test_commit_appends_in_order_and_returns_new_indices():
    buffer = SentenceBuffer()
    buffer.append_fragment("one. two. thr")
    first = buffer.commit(SegmentSplit(sentences=["one.", "two."], pending="thr"))
    assert list(first) == [0, 1]
    buffer.append_fragment("ee. four")
    second = buffer.commit(SegmentSplit(sentences=["three."], pending="four"))
    assert list(second) == [2]
    assert buffer.completed == ["one.", "two.", "three."]
    assert buffer.pending == "four"
    assert buffer.text() == "one. two. three. four"


def test_commit_with_no_sentences_keeps_everything_pending():
    buffer = SentenceBuffer()
    buffer.append_fragment("hello there how")
    added = buffer.commit(SegmentSplit(sentences=[], pending="hello there how"))
    assert len(added) == 0
    assert buffer.snapshot() == ([], "hello there how")


def test_replace_corrects_in_place_without_reordering():
    buffer = SentenceBuffer()
    buffer.commit(SegmentSplit(sentences=["a one", "b two", "c three"], pending=""))
    buffer.replace(range(1, 3), ["B two", "C three"])
    assert buffer.completed == ["a one", "B two", "C three"]
    assert buffer.sentences_at(range(1, 3)) == ["B two", "C three"]


def test_replace_rejects_count_mismatch():
    buffer = SentenceBuffer()
    buffer.commit(SegmentSplit(sentences=["a one", "b two"], pending=""))
    with pytest.raises(ValueError):
        buffer.replace(range(0, 2), ["only one"])
    assert buffer.completed == ["a one", "b two"]


def test_completed_is_a_copy():
    buffer = SentenceBuffer()
    buffer.commit(SegmentSplit(sentences=["kept"], pending=""))
    buffer.completed.append("not kept")
    assert len(buffer) == 1


def test_reset_clears_everything():
    buffer = SentenceBuffer()
    buffer.append_fragment("x")
    buffer.commit(SegmentSplit(sentences=["done"], pending="y"))
    buffer.reset()
    assert buffer.snapshot() == ([], "")


def test_context_window_evicts_oldest():
    window = ContextWindow(size=3)
    window.extend(["s1", "s2"])
    window.extend(["s3", "s4"])
    assert window.sentences() == ["s2", "s3", "s4"]
    assert window.size == 3


def test_recent_outputs_counts_occurrences():
    recent = RecentOutputs(size=4)
    for value in ["a", "b", "a", "c", "a"]:
        recent.push(value)
    assert recent.values() == ["b", "a", "c", "a"]
    assert recent.count("a") == 2
    assert recent.count("z") == 0


def test_session_state_gets_fresh_containers():
    first = SessionState.create(context_size=5, recent_size=7)
    second = SessionState.create()
    assert first.session_id != second.session_id
    assert first.buffer is not second.buffer
    assert first.context.size == 5
    assert second.context.size == 20
