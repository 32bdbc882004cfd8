import asyncio
import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from nodebase.realtime import RealtimeHub
from nodebase.realtime.channels import StatusEvent, http_request_channel, manual_trigger_channel


class RealtimeHubTests(unittest.TestCase):
    def test_subscribers_only_see_their_channel_and_topic(self):
        hub = RealtimeHub()
        http_sub = hub.subscribe("http-request-execution")
        manual_sub = hub.subscribe("manual-trigger-execution")
        other_topic = hub.subscribe("http-request-execution", ["progress"])

        asyncio.run(hub.publish(http_request_channel.status("n1", "loading")))

        self.assertEqual(http_sub.queue.qsize(), 1)
        self.assertEqual(http_sub.queue.get_nowait().node_id, "n1")
        self.assertEqual(manual_sub.queue.qsize(), 0)
        self.assertEqual(other_topic.queue.qsize(), 0)
        self.assertEqual(len(hub.history), 1)

    def test_full_queue_drops_event_for_that_subscriber_only(self):
        hub = RealtimeHub(queue_size=1)
        slow = hub.subscribe("http-request-execution")
        elsewhere = hub.subscribe("manual-trigger-execution")

        async def go():
            await hub.publish(http_request_channel.status("n1", "loading"))
            await hub.publish(http_request_channel.status("n1", "success"))
            await hub.publish(manual_trigger_channel.status("t1", "success"))

        with self.assertLogs("nodebase.realtime.hub", level="WARNING") as logs:
            asyncio.run(go())

        self.assertEqual(len(logs.records), 1)
        self.assertIn("subscriber queue full", logs.output[0])
        self.assertEqual(slow.queue.qsize(), 1)
        self.assertEqual(slow.queue.get_nowait().status, "loading")
        self.assertEqual(elsewhere.queue.qsize(), 1)
        self.assertEqual([e.status for e in hub.history], ["loading", "success", "success"])

    def test_history_is_bounded(self):
        hub = RealtimeHub(history_size=2)

        async def go():
            for node_id in ("a", "b", "c"):
                await hub.publish(http_request_channel.status(node_id, "success"))

        asyncio.run(go())

        self.assertEqual([e.node_id for e in hub.history], ["b", "c"])

    def test_stream_yields_matching_events_and_unsubscribes_on_close(self):
        hub = RealtimeHub()

        async def go():
            stream = hub.stream("http-request-execution")
            pending = asyncio.ensure_future(stream.__anext__())
            await asyncio.sleep(0)
            self.assertEqual(len(hub._subscriptions), 1)

            await hub.publish(manual_trigger_channel.status("t1", "loading"))
            await hub.publish(http_request_channel.status("n1", "success"))
            event = await pending

            await stream.aclose()
            return event

        event = asyncio.run(go())

        self.assertIsInstance(event, StatusEvent)
        self.assertEqual((event.node_id, event.status), ("n1", "success"))
        self.assertEqual(hub._subscriptions, [])

    def test_unsubscribe_is_idempotent(self):
        hub = RealtimeHub()
        sub = hub.subscribe("http-request-execution")

        hub.unsubscribe(sub)
        hub.unsubscribe(sub)

        self.assertEqual(hub._subscriptions, [])


if __name__ == "__main__":
    unittest.main()
