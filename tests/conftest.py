"""Shared fixtures for kanban-sync tests."""

import json

import pytest

from kanban_sync.authority import Authority
from kanban_sync.channel import Channel


class RecordingChannel(Channel):
    """Channel that keeps every frame it is asked to send."""

    def __init__(self, name: str = "test") -> None:
        self._name = name
        self.frames: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def send(self, frame: str) -> None:
        self.frames.append(frame)

    @property
    def messages(self) -> list[dict]:
        return [json.loads(frame) for frame in self.frames]

    @property
    def last_snapshot(self) -> list[dict]:
        message = self.messages[-1]
        assert message["event"] == "snapshot"
        return message["data"]

    def clear(self) -> None:
        self.frames.clear()


@pytest.fixture
def authority() -> Authority:
    return Authority()


@pytest.fixture
def channel(authority: Authority) -> RecordingChannel:
    """A channel already connected to the authority, with its greeting cleared."""
    channel = RecordingChannel("client-a")
    authority.connect(channel)
    channel.clear()
    return channel


@pytest.fixture
def make_channel() -> type[RecordingChannel]:
    return RecordingChannel
