import asyncio
import json

import pytest

from livetranslate.services.network import ApiError
from livetranslate.services.proofreader import Proofreader, parse_corrections


class ScriptedClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def complete(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.response


def test_parse_corrections_accepts_object_and_bare_list():
    assert parse_corrections(json.dumps({"corrected": ["a b", " c d "]}), 2) == ["a b", "c d"]
    assert parse_corrections(json.dumps(["x y"]), 1) == ["x y"]


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"corrected": ["only one"]}),
        json.dumps({"corrected": ["one", "two", "three"]}),
        json.dumps({"corrected": ["one", ""]}),
        json.dumps({"corrected": ["one", 2]}),
        json.dumps({"other": ["one", "two"]}),
    ],
)
def test_parse_corrections_rejects_unusable(content):
    assert parse_corrections(content, 2) is None


def test_correct_returns_corrections_and_sends_context():
    client = ScriptedClient(json.dumps({"corrected": ["회의를 시작하겠습니다."]}))
    proofreader = Proofreader(client, model="gpt-4.1", language="Korean")

    result = asyncio.run(proofreader.correct(["회의를 시작하겠슴니다."], ["안녕하세요."]))

    assert result == ["회의를 시작하겠습니다."]
    payload = json.loads(client.calls[0]["user"])
    assert payload == {"context": ["안녕하세요."], "sentences": ["회의를 시작하겠슴니다."]}
    assert "안녕하세요" in client.calls[0]["user"]
    assert client.calls[0]["json_mode"] is True


def test_count_mismatch_falls_back_to_originals():
    client = ScriptedClient(json.dumps({"corrected": ["merged sentence"]}))
    proofreader = Proofreader(client, model="m")
    originals = ["first one", "second one"]
    assert asyncio.run(proofreader.correct(originals, [])) == originals


def test_empty_input_skips_the_call():
    client = ScriptedClient("{}")
    assert asyncio.run(Proofreader(client, model="m").correct([], ["ctx"])) == []
    assert client.calls == []


def test_transport_errors_propagate():
    proofreader = Proofreader(ScriptedClient(error=ApiError("Completion error: timeout")), model="m")
    with pytest.raises(ApiError):
        asyncio.run(proofreader.correct(["a b"], []))
