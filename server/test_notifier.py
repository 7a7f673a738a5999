import asyncio

from collection_sync.notifier import ChangeNotifier


class TestChangeNotifier:

    def test_dispatch_in_registration_order(self):
        notifier = ChangeNotifier()
        calls = []
        notifier.subscribe('cart', lambda: calls.append('first'))
        notifier.subscribe('cart', lambda: calls.append('second'))

        notifier.notify('cart')

        assert calls == ['first', 'second']

    def test_kinds_are_separate_channels(self):
        notifier = ChangeNotifier()
        calls = []
        notifier.subscribe('cart', lambda: calls.append('cart'))
        notifier.subscribe('wishlist', lambda: calls.append('wishlist'))

        notifier.notify('wishlist')

        assert calls == ['wishlist']

    def test_unsubscribe(self):
        notifier = ChangeNotifier()
        calls = []
        unsubscribe = notifier.subscribe('cart', lambda: calls.append(1))

        unsubscribe()
        unsubscribe()
        notifier.notify('cart')

        assert calls == []
        assert notifier.subscriber_count('cart') == 0

    def test_same_handler_twice_gets_two_handles(self):
        notifier = ChangeNotifier()
        calls = []

        def handler():
            calls.append(1)

        first = notifier.subscribe('cart', handler)
        notifier.subscribe('cart', handler)
        first()
        notifier.notify('cart')

        assert calls == [1]

    def test_failing_handler_does_not_stop_others(self):
        notifier = ChangeNotifier()
        calls = []

        def broken():
            raise RuntimeError("boom")

        notifier.subscribe('cart', broken)
        notifier.subscribe('cart', lambda: calls.append('ok'))

        notifier.notify('cart')

        assert calls == ['ok']

    def test_async_handlers_are_drained(self):
        notifier = ChangeNotifier()
        calls = []

        async def handler():
            await asyncio.sleep(0)
            calls.append('async')

        async def run():
            notifier.subscribe('cart', handler)
            notifier.notify('cart')
            assert calls == []
            await notifier.drain()

        asyncio.run(run())
        assert calls == ['async']

    def test_async_handler_without_loop_is_dropped(self):
        notifier = ChangeNotifier()
        calls = []

        async def handler():
            calls.append('async')

        notifier.subscribe('cart', handler)
        notifier.notify('cart')

        assert calls == []

    def test_clear_removes_everything(self):
        notifier = ChangeNotifier()
        notifier.subscribe('cart', lambda: None)
        notifier.subscribe('identity', lambda: None)

        notifier.clear()

        assert notifier.subscriber_count('cart') == 0
        assert notifier.subscriber_count('identity') == 0
