#!/usr/bin/env python3
"""
End-to-end tests for the relay server.

Every test talks to a real relay over localhost TCP:
- Name handshake and aborted handshakes
- Join, chat and leave fan-out (sender-inclusive)
- Isolation from abruptly severed peers
- Per-sender ordering
- Duplicate names
- Bind failure
"""

import asyncio
import errno
import os
import socket
import unittest

from relay_test_utils import TIMEOUT, RelayTestCase, read, read_until, send

from relay_server.main_server import RelayServer, RelayStartupError
from relay_server.utils.config import ServerConfig


class TestHandshake(RelayTestCase):
    """Test cases for the name handshake."""

    async def test_submit_name_then_name_accepted(self):
        reader, writer = await self.open_client()
        self.assertEqual(await read(reader), 'SUBMIT_NAME')

        send(writer, 'alice')

        self.assertEqual(await read(reader), 'NAME_ACCEPTED alice')
        self.assertEqual(await read(reader), 'alice has joined the chat.')
        self.assertEqual(len(self.server.registry), 1)

    async def test_empty_name_closes_without_announcement(self):
        alice_reader, alice_writer = await self.join('alice')
        await read_until(alice_reader, 'alice has joined the chat.')

        reader, writer = await self.open_client()
        self.assertEqual(await read(reader), 'SUBMIT_NAME')
        send(writer, '')

        # Connection is released and never registered
        self.assertIsNone(await read(reader))
        self.assertEqual(len(self.server.registry), 1)

        send(alice_writer, 'ping')
        self.assertEqual(await read(alice_reader), 'alice: ping')

    async def test_eof_before_name_closes_without_announcement(self):
        alice_reader, alice_writer = await self.join('alice')
        await read_until(alice_reader, 'alice has joined the chat.')

        reader, writer = await self.open_client()
        self.assertEqual(await read(reader), 'SUBMIT_NAME')
        writer.write_eof()
        self.assertIsNone(await read(reader))

        send(alice_writer, 'ping')
        self.assertEqual(await read(alice_reader), 'alice: ping')

    async def test_crlf_name_is_trimmed(self):
        reader, writer = await self.open_client()
        self.assertEqual(await read(reader), 'SUBMIT_NAME')
        writer.write(b'alice\r\n')
        self.assertEqual(await read(reader), 'NAME_ACCEPTED alice')

    async def test_marker_like_name_is_accepted_verbatim(self):
        reader, writer = await self.join('SUBMIT_NAME')
        self.assertEqual(await read(reader), 'SUBMIT_NAME has joined the chat.')


class TestFanOut(RelayTestCase):
    """Test cases for join, chat and leave broadcasts."""

    async def test_alice_and_bob_scenario(self):
        alice_reader, alice_writer = await self.join('alice')
        self.assertEqual(await read(alice_reader), 'alice has joined the chat.')

        bob_reader, bob_writer = await self.join('bob')
        self.assertEqual(await read(bob_reader), 'bob has joined the chat.')
        self.assertEqual(await read(alice_reader), 'bob has joined the chat.')

        send(alice_writer, 'hello')
        self.assertEqual(await read(alice_reader), 'alice: hello')
        self.assertEqual(await read(bob_reader), 'alice: hello')

        bob_writer.close()
        await bob_writer.wait_closed()
        self.assertEqual(await read(alice_reader), 'bob has left the chat.')
        await self.wait_until(lambda: len(self.server.registry) == 1)

    async def test_chat_reaches_every_client_including_sender(self):
        readers = {}
        writers = {}
        for name in ('A', 'B', 'C'):
            readers[name], writers[name] = await self.join(name)
        for name in ('A', 'B', 'C'):
            await read_until(readers[name], 'C has joined the chat.')

        send(writers['A'], 'content')

        for name in ('A', 'B', 'C'):
            self.assertEqual(await read(readers[name]), 'A: content')

    async def test_empty_lines_are_not_broadcast(self):
        reader, writer = await self.join('alice')
        await read_until(reader, 'alice has joined the chat.')

        send(writer, '')
        send(writer, '')
        send(writer, 'after')

        self.assertEqual(await read(reader), 'alice: after')

    async def test_lines_from_one_sender_keep_their_order(self):
        a_reader, a_writer = await self.join('A')
        b_reader, b_writer = await self.join('B')
        await read_until(a_reader, 'B has joined the chat.')
        await read_until(b_reader, 'B has joined the chat.')

        for i in range(20):
            send(a_writer, f'line {i}')

        expected = [f'A: line {i}' for i in range(20)]
        for reader in (a_reader, b_reader):
            received = [await read(reader) for _ in range(20)]
            self.assertEqual(received, expected)

    async def test_concurrent_broadcasts_to_a_client_that_is_not_reading(self):
        reader, writer = await self.join('slow')
        await read_until(reader, 'slow has joined the chat.')

        # Large enough to pause the transport, so several drains wait at once
        payloads = [c * 400000 for c in 'abc']
        broadcasts = asyncio.gather(*(self.server.registry.broadcast(p) for p in payloads))
        await asyncio.sleep(0.05)

        received = [await read(reader) for _ in payloads]

        self.assertEqual(await asyncio.wait_for(broadcasts, TIMEOUT), [[], [], []])
        self.assertEqual(received, payloads)
        self.assertEqual(len(self.server.registry), 1)

    async def test_long_line_is_relayed_whole(self):
        reader, writer = await self.join('alice')
        await read_until(reader, 'alice has joined the chat.')

        content = 'x' * 200000
        send(writer, content)

        data = await asyncio.wait_for(reader.readuntil(b'\n'), 5.0)
        self.assertEqual(data.decode('utf-8'), f'alice: {content}\n')


class TestIsolation(RelayTestCase):
    """Test cases for misbehaving peers."""

    async def test_severed_peer_is_announced_and_others_unaffected(self):
        a_reader, a_writer = await self.join('A')
        b_reader, b_writer = await self.join('B')
        c_reader, c_writer = await self.join('C')
        await read_until(a_reader, 'C has joined the chat.')
        await read_until(c_reader, 'C has joined the chat.')

        # Drop B without a clean close
        b_writer.transport.abort()

        self.assertEqual(await read(a_reader), 'B has left the chat.')
        self.assertEqual(await read(c_reader), 'B has left the chat.')

        send(a_writer, 'still here')
        self.assertEqual(await read(a_reader), 'A: still here')
        self.assertEqual(await read(c_reader), 'A: still here')
        self.assertEqual(len(self.server.registry), 2)

    async def test_leave_is_announced_after_eof(self):
        a_reader, a_writer = await self.join('A')
        b_reader, b_writer = await self.join('B')
        await read_until(a_reader, 'B has joined the chat.')
        await read_until(b_reader, 'B has joined the chat.')

        b_writer.write_eof()

        self.assertEqual(await read(a_reader), 'B has left the chat.')
        self.assertIsNone(await read(b_reader))


class TestConcurrentClients(RelayTestCase):
    """Test cases for many clients joining at once."""

    async def test_concurrent_handshakes(self):
        names = [f'user{i}' for i in range(8)]
        clients = await asyncio.gather(*(self.join(name) for name in names))
        self.assertEqual(len(self.server.registry), len(names))

        first_writer = clients[0][1]
        send(first_writer, 'hi all')

        for name, (reader, _) in zip(names, clients):
            lines = await read_until(reader, 'user0: hi all')
            # NAME_ACCEPTED was consumed by join(); it must not repeat
            self.assertFalse(any(line.startswith('NAME_ACCEPTED') for line in lines))
            self.assertIn(f'{name} has joined the chat.', lines)

    async def test_every_remaining_client_sees_joins_and_leaves(self):
        names = [f'user{i}' for i in range(6)]
        clients = [await self.join(name) for name in names]

        for i, (reader, _) in enumerate(clients):
            lines = await read_until(reader, 'user5 has joined the chat.')
            expected = [f'{name} has joined the chat.' for name in names[i:]]
            self.assertEqual(lines, expected)

        survivors, dropped = clients[:3], clients[3:]
        for _, writer in dropped:
            writer.transport.abort()

        expected_leaves = sorted(f'{name} has left the chat.' for name in names[3:])
        for reader, _ in survivors:
            received = [await read(reader) for _ in dropped]
            self.assertEqual(sorted(received), expected_leaves)

        # Nothing else is queued ahead of the next chat line
        send(survivors[0][1], 'who is left?')
        for reader, _ in survivors:
            self.assertEqual(await read(reader), 'user0: who is left?')
        await self.wait_until(lambda: len(self.server.registry) == 3)

    async def test_duplicate_names_are_both_accepted(self):
        first = await self.join('alice')
        second = await self.join('alice')
        self.assertEqual(len(self.server.registry), 2)

        send(second[1], 'which one?')
        for reader, _ in (first, second):
            await read_until(reader, 'alice: which one?')


class TestListener(unittest.IsolatedAsyncioTestCase):
    """Test cases for binding the listening endpoint."""

    async def test_port_in_use_raises_startup_error(self):
        first = RelayServer(ServerConfig('127.0.0.1', 0))
        await first.listen()
        try:
            second = RelayServer(ServerConfig('127.0.0.1', first.bound_port))
            with self.assertRaises(RelayStartupError):
                await second.listen()
        finally:
            await first.stop()

    async def test_bound_port_before_listen_is_none(self):
        self.assertIsNone(RelayServer(ServerConfig('127.0.0.1', 0)).bound_port)


class TestAcceptFailure(unittest.IsolatedAsyncioTestCase):
    """Test cases for accept() errors on the listening socket."""

    async def asyncSetUp(self):
        self.server = RelayServer(ServerConfig('127.0.0.1', 0))
        await self.server.listen()
        self.serve_task = asyncio.create_task(self.server.start())
        await asyncio.sleep(0.01)

    async def asyncTearDown(self):
        self.serve_task.cancel()
        try:
            await self.serve_task
        except (asyncio.CancelledError, RelayStartupError):
            pass

    async def test_accept_error_on_listener_ends_start(self):
        loop = asyncio.get_running_loop()
        with self.assertLogs('broadcast_relay', level='ERROR') as logs:
            loop.call_exception_handler({
                'message': 'socket.accept() out of system resource',
                'exception': OSError(errno.EMFILE, 'Too many open files'),
                'socket': self.server.server.sockets[0],
            })
            with self.assertRaises(RelayStartupError):
                await asyncio.wait_for(self.serve_task, TIMEOUT)

        self.assertTrue(any('accept' in line for line in logs.output))
        self.assertFalse(self.server.server.is_serving())

    async def test_unrelated_loop_errors_keep_serving(self):
        loop = asyncio.get_running_loop()
        loop.call_exception_handler({
            'message': 'unrelated failure',
            'exception': OSError('elsewhere'),
        })
        await asyncio.sleep(0.05)

        self.assertFalse(self.serve_task.done())
        self.assertTrue(self.server.server.is_serving())

    @unittest.skipUnless(os.path.isdir('/proc/self/fd'), "needs /proc/self/fd")
    async def test_descriptor_exhaustion_ends_start(self):
        import resource

        soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
        limit = max(int(fd) for fd in os.listdir('/proc/self/fd')) + 2
        fillers = []
        client = None
        try:
            resource.setrlimit(resource.RLIMIT_NOFILE, (limit, hard))
            # Take every free descriptor below the limit, then free one for the client
            while True:
                try:
                    fillers.append(os.open(os.devnull, os.O_RDONLY))
                except OSError:
                    break
            os.close(fillers.pop())
            client = socket.create_connection(('127.0.0.1', self.server.bound_port))

            with self.assertLogs('broadcast_relay', level='ERROR'):
                with self.assertRaises(RelayStartupError):
                    await asyncio.wait_for(self.serve_task, TIMEOUT)
        finally:
            for fd in fillers:
                os.close(fd)
            resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))
            if client is not None:
                client.close()


if __name__ == '__main__':
    unittest.main()
