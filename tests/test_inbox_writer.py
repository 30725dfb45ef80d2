import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path


def _turn(content: str, external_id: str = "5001", quoted=None):
    from scribe.contracts.v1 import Turn

    return Turn(
        external_id=external_id,
        timestamp=datetime(2026, 3, 4, 5, 6, 7, 89000, tzinfo=timezone.utc),
        content=content,
        author_id="42",
        quoted_content=quoted,
    )


class TestInboxWriter(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name) / "discord"

    def tearDown(self) -> None:
        self._td.cleanup()

    def _writer(self, **kwargs):
        from scribe.mailbox import InboxWriter, MailboxLayout

        return InboxWriter(MailboxLayout(self.root), **kwargs)

    def test_agent_mention_stripped_and_trimmed(self) -> None:
        writer = self._writer(agent_name="agent")
        name = writer.write(_turn("@agent please build"), "c1")
        self.assertEqual(name, "20260304050607089.5001.md")
        path = self.root / "c1" / "inbox" / name
        self.assertEqual(path.read_text(encoding="utf-8"), "please build")

    def test_agent_name_is_case_insensitive(self) -> None:
        writer = self._writer(agent_name="Maximus")
        name = writer.write(_turn("hey MAXIMUS, ship it maximus "), "c1")
        self.assertEqual((self.root / "c1" / "inbox" / name).read_text(encoding="utf-8"), "hey , ship it")

    def test_self_mention_stripped_when_agent_name_set(self) -> None:
        writer = self._writer(agent_name="maximus", self_user_id="777")
        name = writer.write(_turn("<@777> <@!777> deploy"), "c1")
        self.assertEqual((self.root / "c1" / "inbox" / name).read_text(encoding="utf-8"), "deploy")

    def test_self_mention_kept_without_agent_name(self) -> None:
        writer = self._writer(self_user_id="777")
        name = writer.write(_turn("  <@777> deploy "), "c1")
        self.assertEqual((self.root / "c1" / "inbox" / name).read_text(encoding="utf-8"), "<@777> deploy")

    def test_without_agent_name_content_kept(self) -> None:
        writer = self._writer()
        name = writer.write(_turn("  @agent please build  "), "c1")
        self.assertEqual((self.root / "c1" / "inbox" / name).read_text(encoding="utf-8"), "@agent please build")

    def test_empty_after_strip_still_written(self) -> None:
        writer = self._writer(agent_name="agent")
        name = writer.write(_turn("@agent"), "c1")
        self.assertEqual((self.root / "c1" / "inbox" / name).read_text(encoding="utf-8"), "")

    def test_thread_nests_under_conversation(self) -> None:
        writer = self._writer()
        name = writer.write(_turn("in a thread"), "c1", "t9")
        self.assertTrue((self.root / "c1" / "t9" / "inbox" / name).is_file())

    def test_quoted_content_rendered_as_blockquote(self) -> None:
        writer = self._writer()
        name = writer.write(_turn("yes, do it", quoted="line one\nline two"), "c1")
        text = (self.root / "c1" / "inbox" / name).read_text(encoding="utf-8")
        self.assertEqual(text, "> line one\n> line two\n\nyes, do it")

    def test_existing_file_overwritten(self) -> None:
        writer = self._writer()
        name = writer.write(_turn("first"), "c1")
        writer.write(_turn("second"), "c1")
        inbox = self.root / "c1" / "inbox"
        self.assertEqual([p.name for p in inbox.iterdir()], [name])
        self.assertEqual((inbox / name).read_text(encoding="utf-8"), "second")


if __name__ == "__main__":
    unittest.main()
