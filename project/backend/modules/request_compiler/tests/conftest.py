from types import SimpleNamespace
from typing import List

import pytest

from modules.request_compiler import llm_client


class ScriptedReasoning:
    """Stands in for llm_client.invoke; returns scripted replies in order."""

    def __init__(self, replies: List):
        self.replies = list(replies)
        self.calls = []

    async def __call__(self, system_instruction, content, schema=None, job_id=None):
        self.calls.append(SimpleNamespace(instruction=system_instruction, content=list(content), schema=schema))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture()
def scripted(monkeypatch):
    def _install(*replies):
        fake = ScriptedReasoning(replies)
        monkeypatch.setattr(llm_client, "invoke", fake)
        return fake

    return _install


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5),
        )


@pytest.fixture()
def fake_openai(monkeypatch):
    def _install(content):
        completions = FakeCompletions(content)
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        monkeypatch.setattr(llm_client, "_get_client", lambda: client)
        return completions

    return _install
