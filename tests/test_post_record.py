from __future__ import annotations

import json
import unittest
from datetime import datetime, timedelta, timezone

from atlex.embeds import AspectRatio, EmbedExternal, EmbedRecord, External, Image, Images
from atlex.errors import DecodeError, EncodeError
from atlex.labels import SelfLabels
from atlex.lexicon import Blob, BlobRef, UnknownVariant
from atlex.post import (
    PostRecord,
    ReplyReference,
    decode_post_record,
    decode_post_record_json,
    encode_post_record,
    encode_post_record_json,
)
from atlex.repo import StrongReference
from atlex.richtext import ByteSlice, Facet, Link, Tag

_CREATED = datetime(2024, 5, 19, 12, 34, 56, 789000, tzinfo=timezone.utc)

_ROOT = StrongReference(
    uri="at://did:plc:alice/app.bsky.feed.post/3kroot",
    cid="bafyreiroot",
)
_PARENT = StrongReference(
    uri="at://did:plc:bob/app.bsky.feed.post/3kparent",
    cid="bafyreiparent",
)


def _full_record() -> PostRecord:
    return PostRecord(
        text="hello #world https://example.com",
        facets=[
            Facet(
                index=ByteSlice(byte_start=6, byte_end=12),
                features=[Tag(tag="world")],
            ),
            Facet(
                index=ByteSlice(byte_start=13, byte_end=32),
                features=[Link(uri="https://example.com")],
            ),
        ],
        reply=ReplyReference(root=_ROOT, parent=_PARENT),
        embed=Images(
            images=[
                Image(
                    image=Blob(
                        ref=BlobRef(link="bafkreiimage"),
                        mime_type="image/jpeg",
                        size=48213,
                    ),
                    alt="a cat on a keyboard",
                    aspect_ratio=AspectRatio(width=4, height=3),
                )
            ]
        ),
        languages=["en", "fr"],
        labels=SelfLabels.of("graphic-media"),
        tags=["cats", "keyboards"],
        created_at=_CREATED,
    )


class TestEncodeTruncation(unittest.TestCase):
    def test_text_over_limit_is_cut_to_300(self) -> None:
        out = encode_post_record(PostRecord(text="a" * 305, created_at=_CREATED))
        self.assertEqual(out["text"], "a" * 300)

    def test_text_is_cut_on_cluster_boundaries(self) -> None:
        thumbs = "\U0001F44D\U0001F3FD"
        out = encode_post_record(PostRecord(text=thumbs * 301, created_at=_CREATED))
        self.assertEqual(out["text"], thumbs * 300)

    def test_text_within_limit_is_untouched(self) -> None:
        out = encode_post_record(PostRecord(text="a" * 300, created_at=_CREATED))
        self.assertEqual(out["text"], "a" * 300)

    def test_languages_are_cut_to_three(self) -> None:
        record = PostRecord(
            text="hi",
            languages=["en", "fr", "de", "ja"],
            created_at=_CREATED,
        )
        out = encode_post_record(record)
        self.assertEqual(out["langs"], ["en", "fr", "de"])
        self.assertNotIn("languages", out)
        # The in-memory value is left alone.
        self.assertEqual(record.languages, ["en", "fr", "de", "ja"])

    def test_tags_are_cut_per_tag_then_per_list(self) -> None:
        tags = ["x" * 70] + [c * 10 for c in "yzwvutsr"]
        self.assertEqual(len(tags), 9)

        out = encode_post_record(PostRecord(text="hi", tags=tags, created_at=_CREATED))
        self.assertEqual(
            out["tags"],
            ["x" * 64, "y" * 10, "z" * 10, "w" * 10, "v" * 10, "u" * 10, "t" * 10, "s" * 10],
        )
        self.assertEqual(len(tags), 9)

    def test_tags_past_the_limit_are_not_checked(self) -> None:
        tags = [f"tag{i}" for i in range(8)] + ["\udfff"]
        out = encode_post_record(PostRecord(text="hi", tags=tags, created_at=_CREATED))
        self.assertEqual(out["tags"], tags[:8])

    def test_encoding_twice_gives_the_same_result(self) -> None:
        record = PostRecord(
            text="b" * 400,
            languages=["en", "fr", "de", "ja", "ko"],
            tags=["q" * 100] * 12,
            created_at=_CREATED,
        )
        once = encode_post_record(record)
        twice = encode_post_record(decode_post_record(once))
        self.assertEqual(once, twice)


class TestEncodeShape(unittest.TestCase):
    def test_unset_fields_are_omitted(self) -> None:
        out = encode_post_record(PostRecord(text="hi", created_at=_CREATED))
        self.assertEqual(list(out), ["$type", "text", "createdAt"])
        self.assertNotIn("reply", out)
        self.assertNotIn("embed", out)
        self.assertNotIn(None, out.values())

    def test_key_order_and_type(self) -> None:
        out = encode_post_record(_full_record())
        self.assertEqual(
            list(out),
            ["$type", "text", "facets", "reply", "embed", "langs", "labels", "tags", "createdAt"],
        )
        self.assertEqual(out["$type"], "app.bsky.feed.post")

    def test_created_at_format(self) -> None:
        out = encode_post_record(PostRecord(text="hi", created_at=_CREATED))
        self.assertEqual(out["createdAt"], "2024-05-19T12:34:56.789Z")

    def test_nested_objects_use_wire_names(self) -> None:
        out = encode_post_record(_full_record())

        self.assertEqual(
            out["facets"][0],
            {
                "$type": "app.bsky.richtext.facet",
                "index": {"byteStart": 6, "byteEnd": 12},
                "features": [{"$type": "app.bsky.richtext.facet#tag", "tag": "world"}],
            },
        )
        self.assertEqual(out["reply"]["root"]["uri"], _ROOT.uri)
        self.assertEqual(out["reply"]["parent"]["cid"], _PARENT.cid)
        self.assertEqual(
            out["embed"],
            {
                "$type": "app.bsky.embed.images",
                "images": [
                    {
                        "image": {
                            "$type": "blob",
                            "ref": {"$link": "bafkreiimage"},
                            "mimeType": "image/jpeg",
                            "size": 48213,
                        },
                        "alt": "a cat on a keyboard",
                        "aspectRatio": {"width": 4, "height": 3},
                    }
                ],
            },
        )
        self.assertEqual(
            out["labels"],
            {
                "$type": "com.atproto.label.defs#selfLabels",
                "values": [{"val": "graphic-media"}],
            },
        )

    def test_empty_lists_are_kept(self) -> None:
        out = encode_post_record(
            PostRecord(text="", facets=[], tags=[], languages=[], created_at=_CREATED)
        )
        self.assertEqual(out["facets"], [])
        self.assertEqual(out["langs"], [])
        self.assertEqual(out["tags"], [])

    def test_optional_none_fields_inside_embeds_are_dropped(self) -> None:
        record = PostRecord(
            text="link",
            embed=EmbedExternal(external=External(uri="https://example.com", title="Example")),
            created_at=_CREATED,
        )
        out = encode_post_record(record)
        self.assertEqual(
            out["embed"],
            {
                "$type": "app.bsky.embed.external",
                "external": {"uri": "https://example.com", "title": "Example", "description": ""},
            },
        )

    def test_malformed_unicode_fails(self) -> None:
        with self.assertRaises(EncodeError):
            encode_post_record(PostRecord(text="bad \ud83d", created_at=_CREATED))
        with self.assertRaises(EncodeError):
            encode_post_record(PostRecord(text="ok", tags=["\udfff"], created_at=_CREATED))

    def test_json_text_is_compact(self) -> None:
        text = encode_post_record_json(PostRecord(text="héllo", created_at=_CREATED))
        self.assertEqual(
            text,
            '{"$type":"app.bsky.feed.post","text":"héllo","createdAt":"2024-05-19T12:34:56.789Z"}',
        )


class TestPostRecordValue(unittest.TestCase):
    def test_text_and_created_at_cannot_be_reassigned(self) -> None:
        record = PostRecord(text="hi", created_at=_CREATED)
        with self.assertRaises(AttributeError):
            record.text = "changed"
        with self.assertRaises(AttributeError):
            record.created_at = datetime.now(timezone.utc)

        record.tags = ["later"]
        record.embed = EmbedRecord(record=_ROOT)
        self.assertEqual(encode_post_record(record)["tags"], ["later"])

    def test_created_at_defaults_to_now(self) -> None:
        before = datetime.now(timezone.utc).replace(microsecond=0)
        record = PostRecord(text="hi")
        self.assertGreaterEqual(record.created_at, before)
        self.assertEqual(record.created_at.microsecond % 1000, 0)
        self.assertEqual(record.created_at.tzinfo, timezone.utc)

    def test_created_at_is_held_at_wire_precision(self) -> None:
        expected = datetime(2024, 5, 19, 12, 0, 0, 123000, tzinfo=timezone.utc)
        plus_two = timezone(timedelta(hours=2))

        aware = PostRecord(
            text="hi",
            created_at=datetime(2024, 5, 19, 14, 0, 0, 123456, tzinfo=plus_two),
        )
        self.assertEqual(aware.created_at, expected)
        self.assertEqual(aware.created_at.tzinfo, timezone.utc)

        naive = PostRecord(text="hi", created_at=datetime(2024, 5, 19, 12, 0, 0, 123000))
        self.assertEqual(naive.created_at, expected)

    def test_direct_reply_to_root(self) -> None:
        self.assertTrue(ReplyReference(root=_ROOT, parent=_ROOT).is_direct_reply_to_root)
        self.assertFalse(ReplyReference(root=_ROOT, parent=_PARENT).is_direct_reply_to_root)


class TestDecode(unittest.TestCase):
    def test_round_trip_within_limits(self) -> None:
        record = _full_record()
        self.assertEqual(decode_post_record(encode_post_record(record)), record)

    def test_round_trip_with_default_created_at(self) -> None:
        record = PostRecord(text="hi")
        self.assertEqual(decode_post_record(encode_post_record(record)), record)

    def test_round_trip_with_sub_millisecond_and_naive_times(self) -> None:
        for created_at in (
            datetime(2024, 5, 19, 12, 0, 0, 123456, tzinfo=timezone.utc),
            datetime(2024, 5, 19, 12, 0, 0, 123000),
        ):
            with self.subTest(created_at=created_at):
                record = PostRecord(text="hi", created_at=created_at)
                self.assertEqual(decode_post_record(encode_post_record(record)), record)

    def test_round_trip_through_json(self) -> None:
        record = _full_record()
        self.assertEqual(decode_post_record_json(encode_post_record_json(record)), record)

    def test_minimal_record(self) -> None:
        record = decode_post_record({"text": "hi", "createdAt": "2024-05-19T12:34:56Z"})
        self.assertEqual(record.text, "hi")
        self.assertIsNone(record.facets)
        self.assertIsNone(record.reply)
        self.assertIsNone(record.embed)
        self.assertIsNone(record.languages)
        self.assertIsNone(record.labels)
        self.assertIsNone(record.tags)
        self.assertEqual(record.created_at, datetime(2024, 5, 19, 12, 34, 56, tzinfo=timezone.utc))

    def test_limits_are_not_reapplied(self) -> None:
        data = {
            "$type": "app.bsky.feed.post",
            "text": "a" * 500,
            "langs": ["en", "fr", "de", "ja", "ko"],
            "tags": ["t" * 80] * 10,
            "createdAt": "2024-05-19T12:34:56.789Z",
        }
        record = decode_post_record(data)
        self.assertEqual(len(record.text), 500)
        self.assertEqual(len(record.languages or []), 5)
        self.assertEqual(len(record.tags or []), 10)
        self.assertEqual(len((record.tags or [""])[0]), 80)

    def test_unknown_embed_survives_round_trip(self) -> None:
        embed = {"$type": "app.example.embed.poll", "question": "tea?", "options": ["yes", "no"]}
        data = {"text": "vote", "embed": embed, "createdAt": "2024-05-19T12:34:56.789Z"}

        record = decode_post_record(data)
        self.assertIsInstance(record.embed, UnknownVariant)
        assert isinstance(record.embed, UnknownVariant)
        self.assertEqual(record.embed.type, "app.example.embed.poll")
        self.assertEqual(encode_post_record(record)["embed"], embed)

    def test_missing_text_fails(self) -> None:
        with self.assertRaises(DecodeError):
            decode_post_record({"createdAt": "2024-05-19T12:34:56.789Z"})
        with self.assertRaises(DecodeError):
            decode_post_record({"text": 5, "createdAt": "2024-05-19T12:34:56.789Z"})

    def test_bad_created_at_fails(self) -> None:
        with self.assertRaises(DecodeError):
            decode_post_record({"text": "hi", "createdAt": "last tuesday"})
        with self.assertRaises(DecodeError):
            decode_post_record({"text": "hi"})

    def test_bad_nested_values_fail(self) -> None:
        base = {"text": "hi", "createdAt": "2024-05-19T12:34:56.789Z"}
        bad_values = [
            {"embed": {"images": []}},
            {"embed": "not an object"},
            {"reply": {"root": {"uri": "at://x"}}},
            {"facets": [{"index": {"byteStart": 5, "byteEnd": 2}, "features": []}]},
            {"langs": "en"},
            {"tags": ["ok", 3]},
        ]
        for extra in bad_values:
            with self.subTest(extra=extra):
                with self.assertRaises(DecodeError):
                    decode_post_record({**base, **extra})

    def test_not_an_object_fails(self) -> None:
        with self.assertRaises(DecodeError):
            decode_post_record(["text"])  # type: ignore[arg-type]
        with self.assertRaises(DecodeError):
            decode_post_record_json("{not json")

    def test_decoded_json_matches_wire(self) -> None:
        wire = json.loads(encode_post_record_json(_full_record()))
        self.assertEqual(encode_post_record(decode_post_record(wire)), wire)


if __name__ == "__main__":
    unittest.main()
