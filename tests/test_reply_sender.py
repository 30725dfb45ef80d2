import tempfile
import unittest
from pathlib import Path


class TestReplySender(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        from scribe.mailbox import MailboxLayout, ReplySender
        from scribe.transports import MemoryTransport

        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name) / "memory"
        self.layout = MailboxLayout(self.root)
        self.transport = MemoryTransport()
        self.transport.add_conversation("c1", "general")
        self.transport.add_thread("t1")
        self.sender = ReplySender(self.layout, self.transport)

    def tearDown(self) -> None:
        self._td.cleanup()

    def _outbox(self, name: str, content: str, thread=None) -> Path:
        outbox = self.layout.mailbox_path("c1", thread, "outbox")
        outbox.mkdir(parents=True, exist_ok=True)
        path = outbox / name
        path.write_text(content, encoding="utf-8")
        return path

    async def test_delivers_and_archives(self) -> None:
        src = self._outbox("r1.md", "  all done  \n")
        self.assertTrue(await self.sender.send("c1", None, "r1"))
        self.assertEqual([(m.destination_id, m.text) for m in self.transport.sent], [("c1", "all done")])
        self.assertFalse(src.exists())
        self.assertEqual((self.root / "c1" / "sent" / "r1.md").read_text(encoding="utf-8"), "  all done  \n")

    async def test_empty_content_sends_placeholder(self) -> None:
        from scribe.mailbox import EMPTY_PLACEHOLDER

        self._outbox("r1.md", "")
        await self.sender.send("c1", None, "r1")
        self.assertEqual([m.text for m in self.transport.sent], [EMPTY_PLACEHOLDER])
        self.assertEqual(EMPTY_PLACEHOLDER, "(empty)")

    async def test_thread_destination_preferred(self) -> None:
        self._outbox("r1.md", "threaded", thread="t1")
        await self.sender.send("c1", "t1", "r1")
        self.assertEqual(self.transport.sent[0].destination_id, "t1")
        self.assertTrue((self.root / "c1" / "t1" / "sent" / "r1.md").exists())

    async def test_sections_and_chunks_sent_in_order(self) -> None:
        body = "intro\n---\n" + ("x" * 2500) + "\n---\noutro"
        self._outbox("r1.md", body)
        await self.sender.send("c1", None, "r1")
        texts = [m.text for m in self.transport.sent]
        self.assertEqual(texts, ["intro", "x" * 2000, "x" * 500, "outro"])

    async def test_missing_file_is_treated_as_handled(self) -> None:
        self.assertFalse(await self.sender.send("c1", None, "ghost"))
        self.assertEqual(self.transport.sent, [])

    async def test_unavailable_channel_leaves_file(self) -> None:
        outbox = self.layout.mailbox_path("nowhere", None, "outbox")
        outbox.mkdir(parents=True)
        (outbox / "r1.md").write_text("hi", encoding="utf-8")
        self.assertFalse(await self.sender.send("nowhere", None, "r1"))
        self.assertTrue((outbox / "r1.md").exists())
        self.assertFalse((self.root / "nowhere" / "sent").exists())

    async def test_transport_error_leaves_file(self) -> None:
        from scribe.mailbox import TransportError

        src = self._outbox("r1.md", "part one\n---\nBOOM")
        self.transport.fail_sends.add("BOOM")
        with self.assertRaises(TransportError):
            await self.sender.send("c1", None, "r1")
        self.assertTrue(src.exists())
        self.assertFalse((self.root / "c1" / "sent" / "r1.md").exists())

    async def test_undecodable_bytes_are_replaced_and_delivered(self) -> None:
        from scribe.mailbox import OutboxPoller

        outbox = self.layout.mailbox_path("c1", None, "outbox")
        outbox.mkdir(parents=True)
        (outbox / "r.md").write_bytes(b"caf\xe9 done")

        await OutboxPoller(self.layout, self.sender).poll_once()

        self.assertEqual([m.text for m in self.transport.sent], ["caf\ufffd done"])
        self.assertFalse((outbox / "r.md").exists())
        self.assertTrue((self.root / "c1" / "sent" / "r.md").exists())

    async def test_read_outbox_raises_not_found(self) -> None:
        from scribe.mailbox import NotFound
        from scribe.mailbox.sender import read_outbox

        with self.assertRaises(NotFound):
            read_outbox(self.root / "c1" / "outbox" / "ghost.md")

    async def test_resend_after_interrupted_archive(self) -> None:
        from unittest import mock

        src = self._outbox("r1.md", "hello")
        with mock.patch("scribe.mailbox.sender.move_into", side_effect=OSError("crash before rename")):
            with self.assertRaises(OSError):
                await self.sender.send("c1", None, "r1")
        self.assertTrue(src.exists())

        self.assertTrue(await self.sender.send("c1", None, "r1"))
        self.assertEqual([m.text for m in self.transport.sent], ["hello", "hello"])
        self.assertFalse(src.exists())
        self.assertTrue((self.root / "c1" / "sent" / "r1.md").exists())


if __name__ == "__main__":
    unittest.main()
