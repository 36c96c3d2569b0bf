#!/usr/bin/env python3
"""
End-to-end test: real WebSocket server on an ephemeral port, real clients.
"""

import asyncio
import tempfile
import unittest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from client.chat.chat_client import ChatClient
from client.utils.config import ClientConfig
from common.constants import LOG_DIR
from server.main_server import ChatRelayServer
from server.utils.config import ServerConfig
from server.utils.logger import logger

TIMEOUT = 5


class TestRelayIntegration(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        logger.set_logs_dir(self.tmpdir.name)
        config = ServerConfig(host='127.0.0.1', port=0,
                               db_path=str(Path(self.tmpdir.name) / 'chat.db'))
        self.relay = ChatRelayServer(config=config)
        await self.relay.start()
        self.clients = []

    async def asyncTearDown(self):
        for client in self.clients:
            await client.close()
        await self.relay.stop()
        logger.set_logs_dir(LOG_DIR)
        self.tmpdir.cleanup()

    async def open_client(self, username: str) -> ChatClient:
        client = ChatClient(ClientConfig('127.0.0.1', self.relay.port, username))
        self.assertTrue(await client.connect(retry_count=1))
        self.clients.append(client)
        return client

    async def receive_type(self, client: ChatClient, msg_type: str):
        """Skip frames until one of the wanted type arrives."""
        while True:
            message = await client.receive(timeout=TIMEOUT)
            if message.get('type') == msg_type:
                return message

    async def test_join_chat_paginate_leave(self):
        alice = await self.open_client('alice')
        await alice.join()
        history = await self.receive_type(alice, 'history')
        self.assertEqual(history['messages'], [])
        self.assertEqual(await self.receive_type(alice, 'join'), {'type': 'join', 'username': 'alice'})

        for i in range(3):
            await alice.send_chat(f'hello {i}')
            relayed = await self.receive_type(alice, 'message')
            self.assertEqual(relayed['text'], f'hello {i}')

        bob = await self.open_client('bob')
        await bob.join()
        history = await self.receive_type(bob, 'history')
        self.assertEqual([m['text'] for m in history['messages']], ['hello 0', 'hello 1', 'hello 2'])
        self.assertEqual((await self.receive_type(alice, 'join'))['username'], 'bob')

        await bob.load_more(history['messages'][-1]['id'])
        page = await self.receive_type(bob, 'more_history')
        self.assertEqual([m['text'] for m in page['messages']], ['hello 0', 'hello 1'])
        self.assertFalse(page['hasMore'])

        await bob.close()
        self.clients.remove(bob)
        leave = await self.receive_type(alice, 'leave')
        self.assertEqual(leave, {'type': 'leave', 'username': 'bob'})

    async def test_image_policy_over_the_wire(self):
        alice = await self.open_client('alice')
        await alice.join()
        await self.receive_type(alice, 'join')

        await alice.send_image('A' * (5 * 1024 * 1024 + 1), 'image/png')
        await alice.send_image('Zm9v', 'application/pdf')
        await alice.send_image('Zm9v', 'image/png', 'ok')

        # Only the valid image comes back; the connection survived the rejects
        relayed = await self.receive_type(alice, 'image')
        self.assertEqual((relayed['image'], relayed['text']), ('Zm9v', 'ok'))
        self.assertEqual(self.relay.store.count(), 1)


if __name__ == '__main__':
    unittest.main()
