"""
Tests for the job/channel models and the event broadcaster.
"""

import pytest


class TestChannelRunTransitions:

    def test_forward_path(self):
        from reddit_intel.models.job_models import ChannelRun, ChannelStatus

        run = ChannelRun(channel_name="r/x", platform="x")
        for status in ("started", "fetching", "ingesting", "completed"):
            run.advance(ChannelStatus(status))

        assert run.status == ChannelStatus.COMPLETED

    def test_may_skip_ingesting(self):
        from reddit_intel.models.job_models import ChannelRun, ChannelStatus

        run = ChannelRun(channel_name="r/x", platform="x")
        run.advance(ChannelStatus.STARTED)
        run.advance(ChannelStatus.FETCHING)
        run.advance(ChannelStatus.COMPLETED)

        assert run.status.is_terminal

    def test_backwards_move_rejected(self):
        from reddit_intel.models.job_models import ChannelRun, ChannelStatus

        run = ChannelRun(channel_name="r/x", platform="x")
        run.advance(ChannelStatus.FETCHING)

        with pytest.raises(ValueError):
            run.advance(ChannelStatus.STARTED)

    @pytest.mark.parametrize("terminal", ["completed", "failed"])
    def test_terminal_is_final(self, terminal):
        from reddit_intel.models.job_models import ChannelRun, ChannelStatus

        run = ChannelRun(channel_name="r/x", platform="x")
        run.advance(ChannelStatus(terminal))

        with pytest.raises(ValueError):
            run.advance(ChannelStatus.FAILED if terminal == "completed" else ChannelStatus.COMPLETED)


class TestJobParams:

    @pytest.mark.parametrize("params", [
        {"hours": 0},
        {"days": -1},
        {"hours": -2},
    ])
    def test_non_positive_window_rejected(self, params):
        from reddit_intel.models.job_models import JobParams

        with pytest.raises(ValueError):
            JobParams(**params).validate()

    @pytest.mark.parametrize("params,message", [
        ({"hours": float("inf")}, "finite"),
        ({"days": float("nan")}, "finite"),
        ({"days": 40_000}, "at most"),
    ])
    def test_unbounded_window_rejected(self, params, message):
        from reddit_intel.models.job_models import JobParams

        with pytest.raises(ValueError, match=message):
            JobParams(**params).validate()

    def test_time_window_label(self):
        from reddit_intel.models.job_models import JobParams

        assert JobParams(hours=24).time_window == "24_hours"
        assert JobParams(days=7).time_window == "7_days"

    def test_cutoff(self):
        from reddit_intel.models.job_models import JobParams

        assert JobParams(days=1).cutoff(now=200_000.5) == 200_000 - 86_400


class TestChannelStats:

    def test_addition(self):
        from reddit_intel.models.job_models import ChannelStats

        total = ChannelStats(1, 2, 3, 0) + ChannelStats(4, 5, 8, 1)

        assert total.to_dict() == {"posts": 5, "comments": 7, "successful": 11, "failed": 1}


class TestEventBroadcaster:

    def test_delivers_to_all_subscribers(self):
        from reddit_intel.events import EventBroadcaster

        first, second = [], []
        broadcaster = EventBroadcaster()
        broadcaster.subscribe(first.append)
        broadcaster.subscribe(second.append)

        broadcaster.publish({"type": "job_created"})

        assert first == second == [{"type": "job_created"}]

    def test_raising_subscriber_is_skipped(self):
        from reddit_intel.events import EventBroadcaster

        received = []
        broadcaster = EventBroadcaster()

        def broken(event):
            raise ConnectionError("closed")

        broadcaster.subscribe(broken)
        broadcaster.subscribe(received.append)

        broadcaster.publish({"type": "job_started"})

        assert received == [{"type": "job_started"}]

    def test_unsubscribe_is_idempotent(self):
        from reddit_intel.events import EventBroadcaster

        broadcaster = EventBroadcaster()
        unsubscribe = broadcaster.subscribe(print)

        unsubscribe()
        unsubscribe()

        assert broadcaster.subscriber_count == 0

    def test_event_builders(self):
        from reddit_intel.events import channel_completed, channel_error, channel_progress

        assert channel_progress("r/x", "ingesting", posts_count=4) == {
            "type": "channel_progress", "channel": "r/x", "status": "ingesting", "posts_count": 4,
        }
        assert channel_completed("r/x", {"posts": 1})["status"] == "completed"
        assert channel_error("r/x", "boom")["error"] == "boom"
