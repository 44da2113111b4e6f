import asyncio

from signalframe.news.progress import ProgressChannel
from signalframe.schemas import ProgressStage


class TestProgressChannel:
    def test_subscribers_receive_events(self):
        async def scenario():
            channel = ProgressChannel(run_id="r1")
            queue = channel.subscribe()
            channel.emit(ProgressStage.STARTED, "go", feeds=3)
            event = await queue.get()
            return event

        event = asyncio.run(scenario())
        assert event.stage == "started"
        assert event.run_id == "r1"
        assert event.data == {"feeds": 3}

    def test_replay_history(self):
        channel = ProgressChannel()
        channel.emit(ProgressStage.STARTED)
        channel.emit(ProgressStage.FETCHING)
        queue = channel.subscribe(replay=True)
        assert queue.qsize() == 2
        assert channel.subscribe(replay=False).qsize() == 0

    def test_full_queue_drops_instead_of_blocking(self):
        channel = ProgressChannel(maxsize=2)
        queue = channel.subscribe()
        for _ in range(5):
            channel.emit(ProgressStage.SOURCE_OK)
        assert queue.qsize() == 2
        assert len(channel.history) == 5

    def test_terminal_stage_closes(self):
        channel = ProgressChannel()
        channel.emit(ProgressStage.FINALIZED)
        assert not channel.closed
        channel.emit(ProgressStage.COMPLETE)
        assert channel.closed

    def test_unsubscribe(self):
        channel = ProgressChannel()
        queue = channel.subscribe()
        channel.unsubscribe(queue)
        channel.emit(ProgressStage.STARTED)
        assert queue.qsize() == 0
