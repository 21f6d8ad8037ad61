"""Scriptable channel client: tests decide when statuses and syncs arrive."""

import inspect


class FakeChannel:
    def __init__(self, name: str, presence_key: str):
        self.name = name
        self.presence_key = presence_key
        self.state = {}
        self.sync_listeners = []
        self.status_callback = None
        self.subscribe_calls = 0
        self.tracked = []
        self.untrack_calls = 0
        self.unsubscribe_calls = 0
        self.fail_track = False
        self.fail_untrack = False

    def on(self, event_type, event_filter, callback):
        if event_type == "presence" and event_filter.get("event") == "sync":
            self.sync_listeners.append(callback)
        return self

    def subscribe(self, callback=None):
        self.subscribe_calls += 1
        self.status_callback = callback
        return self

    async def track(self, payload):
        if self.fail_track:
            raise RuntimeError("track rejected")
        self.tracked.append(payload)

    async def untrack(self):
        self.untrack_calls += 1
        if self.fail_untrack:
            raise RuntimeError("untrack rejected")

    async def unsubscribe(self):
        self.unsubscribe_calls += 1

    def presence_state(self):
        return self.state

    async def emit_status(self, status: str):
        result = self.status_callback(status)
        if inspect.isawaitable(result):
            await result

    def emit_sync(self, state=None):
        if state is not None:
            self.state = state
        for listener in list(self.sync_listeners):
            listener()


class FakeChannelClient:
    def __init__(self):
        self.channels = []

    def channel(self, name, *, presence_key):
        channel = FakeChannel(name, presence_key)
        self.channels.append(channel)
        return channel
