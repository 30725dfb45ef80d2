import itertools
import unittest
from datetime import datetime, timezone
from pathlib import Path


class TestMailboxLayout(unittest.TestCase):
    def _layout(self, conversations=None):
        from scribe.contracts.v1 import ConversationInfo
        from scribe.mailbox import ConversationDirectory, MailboxLayout

        directory = ConversationDirectory.build(
            [ConversationInfo(id=cid, display_name=name) for cid, name in (conversations or [])]
        )
        return MailboxLayout(Path("/tasks/discord"), directory)

    def test_mailbox_path_with_and_without_thread(self) -> None:
        layout = self._layout()
        self.assertEqual(layout.mailbox_path("111", None, "inbox"), Path("/tasks/discord/111/inbox"))
        self.assertEqual(layout.mailbox_path("111", "222", "outbox"), Path("/tasks/discord/111/222/outbox"))
        self.assertEqual(layout.mailbox_path("111", None, "history"), Path("/tasks/discord/111/history"))

    def test_mailbox_path_uses_registered_slug(self) -> None:
        layout = self._layout([("111", "general chat!")])
        self.assertEqual(layout.mailbox_path("111", None, "sent"), Path("/tasks/discord/generalchat/sent"))

    def test_mailbox_path_is_injective(self) -> None:
        layout = self._layout([("1", "alpha"), ("2", "beta")])
        ids = ["1", "2", "3", "a_b", "a-b"]
        threads = [None, "10", "11", "x-y"]
        pairs = list(itertools.product(ids, threads))
        paths = {layout.mailbox_path(c, t, "outbox") for c, t in pairs}
        self.assertEqual(len(paths), len(pairs))

    def test_parse_recovers_ids(self) -> None:
        layout = self._layout([("1", "alpha")])
        for conv, thread in [("1", None), ("1", "99"), ("777", None), ("777", "88")]:
            path = layout.mailbox_path(conv, thread, "outbox") / "reply-1.md"
            entry = layout.parse_outbox_path(path)
            self.assertIsNotNone(entry, path)
            assert entry is not None
            self.assertEqual(entry.conversation_id, conv)
            self.assertEqual(entry.thread_id, thread)
            self.assertEqual(entry.message_id, "reply-1")

    def test_parse_rejects_foreign_paths(self) -> None:
        layout = self._layout()
        for p in [
            "/tasks/discord/1/outbox/reply.txt",
            "/tasks/discord/1/inbox/reply.md",
            "/tasks/discord/1/2/3/outbox/reply.md",
            "/tasks/discord/outbox/reply.md",
            "/tasks/slack/1/outbox/reply.md",
            "/elsewhere/1/outbox/reply.md",
            "/tasks/discord/1/sent/outbox/reply.md",
            "/tasks/discord/1/outbox/.md",
        ]:
            self.assertIsNone(layout.parse_outbox_path(p), p)

    def test_require_outbox_path_raises_malformed(self) -> None:
        from scribe.mailbox import MalformedPath

        layout = self._layout()
        with self.assertRaises(MalformedPath):
            layout.require_outbox_path("/tasks/discord/1/outbox/notes.txt")

    def test_invalid_ids_rejected(self) -> None:
        layout = self._layout()
        for conv, thread in [("", None), ("a/b", None), ("..", None), ("1", "outbox"), ("1", "a/b")]:
            with self.assertRaises(ValueError):
                layout.mailbox_path(conv, thread, "inbox")

    def test_turn_filename_is_sortable(self) -> None:
        from scribe.contracts.v1 import Turn
        from scribe.mailbox import turn_filename

        t1 = Turn(external_id="9", timestamp=datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc))
        t2 = Turn(external_id="1", timestamp=datetime(2026, 1, 2, 3, 4, 6, tzinfo=timezone.utc))
        self.assertEqual(turn_filename(t1), "20260102030405678.9.md")
        self.assertLess(turn_filename(t1), turn_filename(t2))


class TestConversationDirectory(unittest.TestCase):
    def test_slugify_deletes_characters(self) -> None:
        from scribe.mailbox import slugify

        self.assertEqual(slugify("dev ops / 2026!"), "devops2026")
        self.assertEqual(slugify("keep_this-one"), "keep_this-one")

    def test_both_directions(self) -> None:
        from scribe.contracts.v1 import ConversationInfo
        from scribe.mailbox import ConversationDirectory

        d = ConversationDirectory.build([ConversationInfo(id="123", display_name="general")])
        self.assertEqual(d.slug_for("123"), "general")
        self.assertEqual(d.id_for("general"), "123")
        self.assertEqual(d.slug_for("999"), "999")
        self.assertEqual(d.id_for("999"), "999")

    def test_collision_gets_id_suffix(self) -> None:
        from scribe.contracts.v1 import ConversationInfo
        from scribe.mailbox import ConversationDirectory

        d = ConversationDirectory.build(
            [
                ConversationInfo(id="100001", display_name="dev-ops"),
                ConversationInfo(id="200002", display_name="dev-ops!"),
            ]
        )
        self.assertEqual(d.slug_for("100001"), "dev-ops")
        self.assertEqual(d.slug_for("200002"), "dev-ops-200002")
        self.assertEqual(d.id_for("dev-ops-200002"), "200002")

    def test_empty_slug_falls_back_to_id(self) -> None:
        from scribe.contracts.v1 import ConversationInfo
        from scribe.mailbox import ConversationDirectory

        d = ConversationDirectory.build([ConversationInfo(id="42", display_name="🎉🎉")])
        self.assertEqual(d.slug_for("42"), "42")


if __name__ == "__main__":
    unittest.main()
