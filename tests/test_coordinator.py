import asyncio
import pytest
import tether

from tether.protocol.fields import CANCELLED, COMPLETED, EMIT_FAULT, MATCHER_FAULT, REGISTERED, TIMEOUT, TRANSFORM_FAULT
from tether.protocol.message import Message


def ticker(message):
    return message.type == 'TICKER_DATA'


def receive(message):
    return {'type': 'RECEIVE_TICKER_DATA', 'payload': message.payload}


subscribe = {'type': 'SUBSCRIBE_TICKER_DATA', 'payload': ['AAPL']}


def ticker_data(request_id, price=100):
    return {'type': 'TICKER_DATA', 'meta': {'requestId': request_id}, 'payload': {'price': price}}


def test_ticker(session, channel, dispatched):

    async def main():
        handle = session.initiate(ticker, receive, subscribe)

        assert handle.state == REGISTERED
        assert handle.id in session.registry
        assert handle.poll() == False

        channel.inject(ticker_data(handle.id))

        response = await handle
        return handle, response

    handle, response = asyncio.run(main())

    assert len(channel.sent) == 1
    sent = channel.sent[0]
    assert sent.type == 'SUBSCRIBE_TICKER_DATA'
    assert sent.payload == ['AAPL']
    assert sent.request_id == handle.id

    expected = Message(type='RECEIVE_TICKER_DATA', payload={'price': 100}, meta={'requestId': handle.id})
    assert response == expected
    assert dispatched == [expected]

    assert handle.state == COMPLETED
    assert handle.poll() == True
    assert handle.response == expected
    assert handle.result() == {'price': 100}
    assert handle.id not in session.registry
    assert len(session.coordinator) == 0


def test_multiple_transforms(session, channel, dispatched):

    def log(message):
        return {'type': 'LOG_TICKER_DATA', 'payload': message.payload['price']}

    async def main():
        handle = session.initiate(ticker, [receive, log], subscribe)
        channel.inject(ticker_data(handle.id))
        response = await handle.wait()
        return handle, response

    handle, response = asyncio.run(main())

    # The request completes on the first transform's output, but the output
    # of every transform for that match is still dispatched.

    assert [message.type for message in dispatched] == ['RECEIVE_TICKER_DATA', 'LOG_TICKER_DATA']
    assert dispatched[0] != dispatched[1]
    for message in dispatched:
        assert message.request_id == handle.id

    assert response == dispatched[0]
    assert handle.dispatched == 1


def test_unique_identities(session, channel):

    async def main():
        handles = [session.initiate(ticker, receive, subscribe) for x in range(200)]
        return handles

    handles = asyncio.run(main())

    identities = set(handle.id for handle in handles)
    assert len(identities) == 200
    assert set(message.request_id for message in channel.sent) == identities


def test_emit_once(session, channel):

    second = {'type': 'SUBSCRIBE_TICKER_DATA', 'payload': ['MSFT'], 'meta': {'priority': 1}}

    async def main():
        return session.initiate(ticker, receive, [subscribe, second])

    handle = asyncio.run(main())

    assert [message.payload for message in channel.sent] == [['AAPL'], ['MSFT']]
    for message in channel.sent:
        assert message.request_id == handle.id

    assert channel.sent[1].meta == {'priority': 1, 'requestId': handle.id}


def test_isolation(session, channel, dispatched):
    """ Two concurrent requests on the same channel; an inbound message for
        one of them produces output only for that one, even if the other
        request's matcher would otherwise accept it.
    """

    async def main():
        first = session.initiate(ticker, receive, subscribe)
        second = session.initiate(ticker, receive, subscribe)

        channel.inject(ticker_data(second.id, 200))
        await second

        assert first.poll() == False
        assert first.id in session.registry

        channel.inject(ticker_data(first.id, 100))
        await first

        return first, second

    first, second = asyncio.run(main())

    assert [message.request_id for message in dispatched] == [second.id, first.id]
    assert second.result() == {'price': 200}
    assert first.result() == {'price': 100}


def test_uncorrelated_inbound(session, channel, dispatched):

    async def main():
        handle = session.initiate(ticker, receive, subscribe)

        channel.inject({'type': 'TICKER_DATA', 'payload': {'price': 1}})
        channel.inject(ticker_data('someone-else'))

        return handle

    handle = asyncio.run(main())

    assert dispatched == []
    assert handle.poll() == False


def test_silence_after_completion(session, channel, dispatched):

    async def main():
        handle = session.initiate(ticker, receive, subscribe)

        channel.inject(ticker_data(handle.id, 100))
        channel.inject(ticker_data(handle.id, 101))

        await handle

        assert session.registry.on_inbound(ticker_data(handle.id, 102)) == 0
        return handle

    handle = asyncio.run(main())

    # The second message arrived before the waiting task resumed; it still
    # must not produce any output.

    assert len(dispatched) == 1
    assert handle.result() == {'price': 100}
    assert handle.dispatched == 1


def test_identity_transform(session, channel, dispatched):

    async def main():
        handle = session.initiate(ticker, lambda message: message, subscribe)
        inbound = {'type': 'TICKER_DATA', 'payload': {'price': 5}, 'meta': {'requestId': handle.id, 'seq': 7}}
        channel.inject(inbound)
        return await handle

    response = asyncio.run(main())

    assert response.type == 'TICKER_DATA'
    assert response.payload == {'price': 5}
    assert response.meta['seq'] == 7
    assert response.request_id is not None


def test_until(session, channel, dispatched):

    def progress(message):
        return {'type': 'PROGRESS', 'payload': message.payload}

    def finished(message):
        return message.payload == 'done'

    async def main():
        handle = session.initiate(lambda message: True, progress, subscribe, until=finished)

        channel.inject({'type': 'STATUS', 'payload': 'working', 'meta': {'requestId': handle.id}})
        channel.inject({'type': 'STATUS', 'payload': 'done', 'meta': {'requestId': handle.id}})
        channel.inject({'type': 'STATUS', 'payload': 'late', 'meta': {'requestId': handle.id}})

        await handle
        return handle

    handle = asyncio.run(main())

    assert handle.dispatched == 2
    assert handle.result() == 'done'
    assert [message.payload for message in dispatched] == ['working', 'done']


def test_timeout(session, channel, dispatched):

    async def main():
        handle = session.initiate(ticker, receive, subscribe, timeout=0.01)
        response = await handle
        return handle, response

    handle, response = asyncio.run(main())

    assert response.type == TIMEOUT
    assert response.error is True
    assert response.request_id == handle.id
    assert dispatched == [response]
    assert handle.id not in session.registry

    with pytest.raises(tether.RequestTimeout):
        handle.result()


def test_default_timeout(channel, bus):

    session = tether.Session(channel, bus, timeout=0.01)

    async def main():
        return await session.initiate(ticker, receive, subscribe)

    response = asyncio.run(main())
    assert response.type == TIMEOUT


def test_cancel(session, channel):

    async def main():
        handle = session.initiate(ticker, receive, subscribe)
        assert handle.cancel() == True
        assert handle.cancel() == False
        response = await handle
        return handle, response

    handle, response = asyncio.run(main())

    assert response.type == CANCELLED
    assert handle.id not in session.registry

    with pytest.raises(tether.RequestCancelled):
        handle.result()


def test_abandoned(session, channel):
    """ Cancelling one task waiting on a request leaves the request pending
        for any other task waiting on the same handle.
    """

    async def other(handle):
        return await handle

    async def main():
        handle = session.initiate(ticker, receive, subscribe)
        first = asyncio.ensure_future(handle.wait())
        second = asyncio.ensure_future(other(handle))

        await asyncio.sleep(0)
        first.cancel()

        with pytest.raises(asyncio.CancelledError):
            await first

        await asyncio.sleep(0)
        assert handle.state == REGISTERED
        assert handle.id in session.registry
        assert len(session.coordinator) == 1

        channel.inject(ticker_data(handle.id))
        response = await second
        return handle, response

    handle, response = asyncio.run(main())

    assert response.type == 'RECEIVE_TICKER_DATA'
    assert handle.result() == {'price': 100}
    assert handle.state == COMPLETED
    assert handle.id not in session.registry
    assert len(session.coordinator) == 0


def test_matcher_fault(session, channel, dispatched):

    def broken(message):
        raise KeyError('price')

    async def main():
        handle = session.initiate(broken, receive, subscribe)
        channel.inject(ticker_data(handle.id))
        response = await handle
        return handle, response

    handle, response = asyncio.run(main())

    assert response.type == MATCHER_FAULT
    assert response.error == True
    assert response.request_id == handle.id
    assert response.payload['type'] == 'KeyError'
    assert dispatched == [response]

    with pytest.raises(tether.RequestError) as error:
        handle.result()

    assert error.value.response is response
    assert handle.state == COMPLETED
    assert handle.id not in session.registry
    assert len(session.coordinator) == 0


def test_transform_fault(session, channel, dispatched):

    def broken(message):
        return {'type': 'BROKEN', 'payload': 1 / 0}

    async def main():
        handle = session.initiate(ticker, [broken, receive], subscribe)
        channel.inject(ticker_data(handle.id))
        response = await handle
        return handle, response

    handle, response = asyncio.run(main())

    # The faulty transform's output is replaced with an error signal, which
    # completes the request; the remaining transform still runs.

    assert response.type == TRANSFORM_FAULT
    assert response.error == True
    assert response.request_id == handle.id
    assert response.payload['type'] == 'ZeroDivisionError'
    assert [message.type for message in dispatched] == [TRANSFORM_FAULT, 'RECEIVE_TICKER_DATA']

    with pytest.raises(tether.RequestError):
        handle.result()

    assert handle.state == COMPLETED
    assert handle.id not in session.registry
    assert len(session.coordinator) == 0


def test_emit_failure(session, channel, dispatched):

    channel.close()

    async def main():
        with pytest.raises(tether.transport.TransportConnectionError):
            session.initiate(ticker, receive, subscribe)

    asyncio.run(main())

    assert len(session.registry) == 0
    assert len(session.coordinator) == 0
    assert dispatched[0].type == EMIT_FAULT
    assert dispatched[0].error is True


def test_pending_result(session):

    async def main():
        handle = session.initiate(ticker, receive, subscribe)

        with pytest.raises(RuntimeError):
            handle.result()

    asyncio.run(main())


def test_requires_loop(session):

    with pytest.raises(RuntimeError):
        session.initiate(ticker, receive, subscribe)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
