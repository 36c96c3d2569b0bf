#!/usr/bin/env python3
"""
Unit tests for common/protocol_definitions.py

Decoding must yield the right envelope variant for well-formed frames and
None for anything malformed, so the server can drop it without replying.
"""

import json
import unittest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from common.protocol_definitions import (
    ChatMessage, JoinEnvelope, ChatEnvelope, ImageEnvelope, LoadMoreEnvelope,
    decode_envelope, create_history_message, create_more_history_message
)


def frame(**fields) -> str:
    return json.dumps(fields)


class TestDecodeEnvelope(unittest.TestCase):

    def test_join(self):
        envelope = decode_envelope(frame(type='join', username='alice'))
        self.assertIsInstance(envelope, JoinEnvelope)
        self.assertEqual(envelope.username, 'alice')

    def test_message_keeps_raw_payload(self):
        envelope = decode_envelope(frame(type='message', username='alice', text='hi', extra=1))
        self.assertIsInstance(envelope, ChatEnvelope)
        self.assertEqual(envelope.text, 'hi')
        self.assertEqual(envelope.raw, {'type': 'message', 'username': 'alice', 'text': 'hi', 'extra': 1})

    def test_image_text_optional(self):
        envelope = decode_envelope(frame(type='image', username='bob', image='Zm9v', imageType='image/png'))
        self.assertIsInstance(envelope, ImageEnvelope)
        self.assertEqual(envelope.text, '')
        self.assertEqual(envelope.image_type, 'image/png')

    def test_image_type_not_policed_here(self):
        # Policy checks belong to the chat server, not the decoder
        envelope = decode_envelope(frame(type='image', username='bob', image='Zm9v', imageType='application/pdf'))
        self.assertIsInstance(envelope, ImageEnvelope)

    def test_load_more(self):
        envelope = decode_envelope(frame(type='load_more', beforeId=42))
        self.assertIsInstance(envelope, LoadMoreEnvelope)
        self.assertEqual(envelope.before_id, 42)

    def test_accepts_bytes(self):
        envelope = decode_envelope(frame(type='join', username='alice').encode('utf-8'))
        self.assertIsInstance(envelope, JoinEnvelope)

    def test_malformed_frames_return_none(self):
        cases = [
            'not json',
            b'\xff\xfe',
            '[1, 2, 3]',
            '"join"',
            frame(username='alice'),
            frame(type=['join'], username='alice'),
            frame(type='dance', username='alice'),
            frame(type='join'),
            frame(type='join', username=''),
            frame(type='join', username=7),
            frame(type='message', username='alice'),
            frame(type='message', username='alice', text=''),
            frame(type='message', text='hi'),
            frame(type='image', username='bob', imageType='image/png'),
            frame(type='image', username='bob', image='Zm9v'),
            frame(type='image', username='bob', image='Zm9v', imageType='image/png', text=5),
            frame(type='load_more'),
            frame(type='load_more', beforeId='42'),
            frame(type='load_more', beforeId=True),
            frame(type='history', messages=[]),
        ]
        for data in cases:
            with self.subTest(data=data):
                self.assertIsNone(decode_envelope(data))


class TestServerMessages(unittest.TestCase):

    def test_history_messages_use_wire_keys(self):
        messages = [ChatMessage(id=3, username='alice', text='hi', timestamp=1000)]
        history = create_history_message(messages, has_more=True)
        self.assertEqual(history['type'], 'history')
        self.assertTrue(history['hasMore'])
        self.assertEqual(history['messages'][0], {
            'id': 3, 'username': 'alice', 'text': 'hi', 'timestamp': 1000,
            'image': None, 'imageType': None
        })

    def test_more_history(self):
        reply = create_more_history_message([], has_more=False)
        self.assertEqual(reply, {'type': 'more_history', 'messages': [], 'hasMore': False})


if __name__ == '__main__':
    unittest.main()
